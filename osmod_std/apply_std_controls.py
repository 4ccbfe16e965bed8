import sys
import json
import argparse
from pathlib import Path

import openstudio

from osmod_std import settings
from osmod_std import openstudio_utils
from osmod_std import air_loop as osair_loop

#===================================================================================================
# region: FUNCTIONS
def parse_args(argv: list[str] = None):
    # create parser object
    parser = argparse.ArgumentParser(description = "Apply the ASHRAE 90.1 standard controls to the air loops of an OpenStudio Model")

    parser.add_argument('-o', '--osmod', type = str,
                        metavar = 'FILE',
                        help = 'The file path of the osm file')

    parser.add_argument('-t', '--template', type = str, default = '90.1-2010',
                        choices = settings.TEMPLATES,
                        help = 'The code vintage to apply')

    parser.add_argument('-c', '--climate_zone', type = str, default = None,
                        metavar = 'ZONE',
                        help = "The ASHRAE climate zone e.g. 'ASHRAE 169-2006-5A', read from the model if not given")

    parser.add_argument('-e', '--epw', type = str, default = None,
                        metavar = 'FILE',
                        help = 'The file path of the weather file')

    parser.add_argument('-d', '--ddy', type = str, default = None,
                        metavar = 'FILE',
                        help = 'The file path of the ddy design day file')

    parser.add_argument('-m', '--measure', type = str, default = None,
                        metavar = 'FILE',
                        help = 'The file path of the json listing the measures that will be applied to the model')

    parser.add_argument('-out', '--output', type = str, default = None,
                        metavar = 'DIR',
                        help = 'The output directory path')

    parser.add_argument('-r', '--run', action = 'store_true', default = False,
                        help = 'turn it on to execute the workflow with the openstudio cli')

    parser.add_argument('-p', '--process', action = 'store_true', default = False,
                        help = 'turn it on if piping in the osm filepath')

    # parse the arguments from standard input
    args = parser.parse_args(argv)
    return args

def apply_std_controls(osm_filepath: str, res_dir: str, template: str, climate_zone: str = None, epw_path: str = None,
                       ddy_path: str = None, measure_path: str = None, run: bool = False) -> dict:
    '''
    Applies the standard controls to every air loop of the model and saves it.

    Parameters
    ----------
    osm_filepath : str
        The file path of the osm file.

    res_dir : str
        The output directory path for all the results.

    template : str
        The code vintage.

    climate_zone : str, optional
        The climate zone, read from the model if None.

    epw_path : str, optional
        The file path of the weather file.

    ddy_path : str, optional
        The file path of the ddy design day file, needed with the weather file.

    measure_path : str, optional
        The file path of the json listing the measures that will be applied to the model.

    run : bool, optional
        execute the workflow after saving it.

    Returns
    -------
    results : dict
        the result of air_loop_apply_standard_controls keyed by air loop name.
    '''
    #------------------------------------------------------------------------------------------------------
    # region: setup openstudio model
    #------------------------------------------------------------------------------------------------------
    proj_name = str(Path(osm_filepath).stem)
    proj_name = proj_name.lower()
    proj_name = proj_name + '_std_controls'

    measure_list = []
    if measure_path != None:
        with open(measure_path) as open_file:
            data = json.load(open_file)
            measure_list = data['measures']

    m = openstudio_utils.read_osm_file(osm_filepath)
    if epw_path != None and ddy_path != None:
        openstudio_utils.add_design_days_and_weather_file(m, epw_path, ddy_path)

    if climate_zone == None:
        climate_zone = openstudio_utils.find_standard_climate_zone_frm_osmod(m)
        if climate_zone == None:
            raise ValueError(f"{osm_filepath} has no ASHRAE climate zone, specify one with --climate_zone")
    #------------------------------------------------------------------------------------------------------
    # endregion: setup openstudio model
    #------------------------------------------------------------------------------------------------------
    #------------------------------------------------------------------------------------------------------
    # region: apply controls
    #------------------------------------------------------------------------------------------------------
    results = {}
    for air_loop in m.getAirLoopHVACs():
        results[air_loop.nameString()] = osair_loop.air_loop_apply_standard_controls(air_loop, template, climate_zone)
    openstudio.logFree(openstudio.Info, 'openstudio.standards.Model', f"Applied {template} {climate_zone} controls to {len(results)} air loops.")
    #------------------------------------------------------------------------------------------------------
    # endregion: apply controls
    #------------------------------------------------------------------------------------------------------
    Path(res_dir).mkdir(parents=True, exist_ok=True)
    if len(measure_list) != 0 or run:
        oswrkflw = openstudio.WorkflowJSON()
        m.setWorkflowJSON(oswrkflw)
        wrkflw_path = openstudio_utils.save_osw_project(res_dir, m, measure_list, proj_name)
        if run:
            openstudio_utils.execute_workflow(wrkflw_path)
    else:
        m.save(str(Path(res_dir).joinpath(proj_name + '.osm')), True)

    return results

def main(argv: list[str] = None):
    args = parse_args(argv)
    pipe_input = args.process
    if pipe_input == False:
        osm_filepath = args.osmod
    else:
        lines = list(sys.stdin)
        osm_filepath = lines[0].strip()

    res_dir = args.output
    if res_dir == None:
        res_dir = str(Path(osm_filepath).parent)

    epw_path = args.epw
    if epw_path != None:
        epw_path = str(Path(epw_path).resolve())
    ddy_path = args.ddy
    if ddy_path != None:
        ddy_path = str(Path(ddy_path).resolve())

    results = apply_std_controls(osm_filepath, res_dir, args.template, climate_zone=args.climate_zone, epw_path=epw_path,
                                 ddy_path=ddy_path, measure_path=args.measure, run=args.run)
    for name, res in results.items():
        dampers = res['damper_positions']
        num_zones_adj = 0 if dampers == None else dampers['num_zones_adj']
        print(f"{name}: {num_zones_adj} zones adjusted, economizer limits = {res['economizer_limits']}, "
              f"multizone optimization = {res['multizone_vav_optimization']}, DCV = {res['demand_control_ventilation']}")

# endregion: FUNCTIONS
#===================================================================================================
#===================================================================================================
# region: Main
if __name__=='__main__':
    main()
# endregion: Main
#===================================================================================================
