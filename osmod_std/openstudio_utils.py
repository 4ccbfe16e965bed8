import json
import shutil
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path

import openstudio
from openstudio import model as osmod
from ladybug.epw import EPW

from osmod_std import settings
from osmod_std import rule_tables

# the minimum airflow fraction field of every VAV terminal variant the damper routines act on
TERMINAL_MIN_AIRFLOW_FRACTION_FIELDS = {'AirTerminalSingleDuctVAVNoReheat': 'ConstantMinimumAirFlowFraction',
                                        'AirTerminalSingleDuctVAVReheat': 'ConstantMinimumAirFlowFraction',
                                        'AirTerminalSingleDuctVAVHeatAndCoolNoReheat': 'ZoneMinimumAirFlowFraction',
                                        'AirTerminalSingleDuctVAVHeatAndCoolReheat': 'ZoneMinimumAirFlowFraction'}

FAN_POWERED_TERMINALS = ('AirTerminalSingleDuctSeriesPIUReheat', 'AirTerminalSingleDuctParallelPIUReheat')

FAN_TYPES = ('FanConstantVolume', 'FanVariableVolume', 'FanOnOff')

MEASURE_TYPES = {'ModelMeasure': 0, 'EnergyPlusMeasure': 1, 'UtilityMeasure': 2, 'ReportingMeasure': 3}

#===================================================================================================
# region: OPTIONAL FIELDS
#===================================================================================================
def get_optional_value(value):
    """
    unwrap an openstudio optional, plain values are passed through.

    Parameters
    ----------
    value : openstudio optional or value
        the value returned by an openstudio getter.

    Returns
    -------
    value : object
        the wrapped value, None if the optional is empty.
    """
    if hasattr(value, 'is_initialized'):
        if value.is_initialized():
            return value.get()
        return None
    return value

def get_autosizable_value(component: osmod.ModelObject, field_name: str) -> tuple[float, str]:
    """
    Get the value of an autosizable field, whether it is hard sized or autosized by a previous sizing run.

    Parameters
    ----------
    component : osmod.ModelObject
        the model object, already cast to its concrete type.

    field_name : str
        the field name as used by the openstudio accessors e.g. 'DesignSupplyAirFlowRate' for designSupplyAirFlowRate(),
        isDesignSupplyAirFlowRateAutosized() and autosizedDesignSupplyAirFlowRate().

    Returns
    -------
    result : tuple[float, str]
        the value (None if not available) and its status, one of 'hard sized', 'autosized', 'autosized but not yet sized', 'not set'.
    """
    getter = field_name[0].lower() + field_name[1:]
    value = get_optional_value(getattr(component, getter)())
    if value != None:
        return value, 'hard sized'

    autosized_getter = getattr(component, 'autosized' + field_name, None)
    if autosized_getter != None:
        value = get_optional_value(autosized_getter())
        if value != None:
            return value, 'autosized'

    is_autosized = getattr(component, 'is' + field_name + 'Autosized', None)
    if is_autosized != None and is_autosized():
        return None, 'autosized but not yet sized'
    return None, 'not set'

def ventilation_rate_procedure_method() -> str:
    """
    name of the multizone ventilation rate procedure in the Controller:MechanicalVentilation system outdoor air methods, renamed in OpenStudio 3.3.0
    """
    version = tuple(int(v) for v in openstudio.openStudioVersion().split('.')[:2])
    if version < (3, 3):
        return 'VentilationRateProcedure'
    return 'Standard62.1VentilationRateProcedure'

def cast_model_object(model_object: osmod.ModelObject, type_names: tuple[str] | list[str]) -> tuple[str, osmod.ModelObject]:
    """
    Cast a model object to the first of the given types it is.

    Parameters
    ----------
    model_object : osmod.ModelObject
        the object to cast.

    type_names : tuple[str] | list[str]
        openstudio class names e.g. 'FanVariableVolume'.

    Returns
    -------
    result : tuple[str, osmod.ModelObject]
        the type name and the cast object, (None, None) if it is none of the types.
    """
    for type_name in type_names:
        cast = getattr(model_object, 'to_' + type_name)()
        if cast.is_initialized():
            return type_name, cast.get()
    return None, None
#===================================================================================================
# endregion: OPTIONAL FIELDS
#===================================================================================================
#===================================================================================================
# region: AIR TERMINALS
#===================================================================================================
def thermal_zone_vav_terminals(thermal_zone: osmod.ThermalZone) -> list[tuple[str, osmod.StraightComponent]]:
    """
    Get the VAV air terminals of a zone.

    Parameters
    ----------
    thermal_zone : osmod.ThermalZone
        thermal zone.

    Returns
    -------
    terminals : list[tuple[str, osmod.StraightComponent]]
        the terminal variant name and the cast terminal.
    """
    terminals = []
    for equip in thermal_zone.equipment():
        variant, term = cast_model_object(equip, tuple(TERMINAL_MIN_AIRFLOW_FRACTION_FIELDS.keys()))
        if term != None:
            terminals.append((variant, term))
    return terminals

def air_terminal_minimum_airflow_fraction(variant: str, terminal: osmod.StraightComponent) -> float:
    """
    minimum airflow fraction of a VAV terminal, 1.0 if the field is left unset.
    """
    field_name = TERMINAL_MIN_AIRFLOW_FRACTION_FIELDS[variant]
    getter = field_name[0].lower() + field_name[1:]
    mdp = get_optional_value(getattr(terminal, getter)())
    if mdp == None:
        mdp = 1.0
    return mdp

def air_terminal_set_minimum_airflow_fraction(variant: str, terminal: osmod.StraightComponent, fraction: float) -> bool:
    field_name = TERMINAL_MIN_AIRFLOW_FRACTION_FIELDS[variant]
    return getattr(terminal, 'set' + field_name)(fraction)
#===================================================================================================
# endregion: AIR TERMINALS
#===================================================================================================
#===================================================================================================
# region: THERMAL ZONES
#===================================================================================================
def find_standard_climate_zone_frm_osmod(openstudio_model: osmod) -> str:
    """
    - Find and Converts the climate zone in the model into the format used by the lookup tables.
    - https://www.rubydoc.info/gems/openstudio-standards/Standard:model_standards_climate_zone

    Parameters
    ----------
    openstudio_model : osmod
        openstudio model object.

    Returns
    -------
    climate_zone : str
        string specifying the climate zone e.g. 'ASHRAE 169-2006-5A', None if the model has no ASHRAE climate zone.
    """
    climate_zone = None
    osmod_czs = openstudio_model.getClimateZones().climateZones()
    for cz in osmod_czs:
        if cz.institution() == 'ASHRAE':
            cz_val = cz.value()
            # Skip blank ASHRAE climate zones put in by OpenStudio Application
            if cz_val == '':
                continue

            if cz_val == '7' or cz_val == '8':
                cz_val = cz_val + 'A'
            climate_zone = settings.CLIMATE_ZONE_PREFIX + cz_val

    return climate_zone

def thermal_zone_outdoor_airflow_rate(thermal_zone: osmod.ThermalZone) -> float:
    """
    Calculates the zone outdoor airflow requirement (Voz) based on the inputs in the DesignSpecification:OutdoorAir objects in all spaces in the zone.
    It is a translation of the this function (https://www.rubydoc.info/gems/openstudio-standards/Standard:thermal_zone_outdoor_airflow_rate)

    Parameters
    ----------
    thermal_zone : osmod.ThermalZone
        thermal zone.

    Returns
    -------
    airflow_rate : float
        the zone outdoor air flow rate in cubic meters per second (m^3/s)
    """
    tot_oa_flow_rate = 0.0

    spaces = thermal_zone.spaces()

    # Variables for merging outdoor air
    sum_oa_for_people = 0.0
    sum_oa_for_floor_area = 0.0
    sum_oa_rate = 0.0
    sum_oa_for_volume = 0.0

    for space in spaces:
        dsn_oa = space.designSpecificationOutdoorAir()
        if dsn_oa.empty() == True:
            continue

        dsn_oa = dsn_oa.get()

        floor_area = space.floorArea()
        number_of_people = space.numberOfPeople()
        volume = space.volume()

        # compute outdoor air rates in case we need them
        oa_for_people = number_of_people * dsn_oa.outdoorAirFlowperPerson()
        oa_for_floor_area = floor_area * dsn_oa.outdoorAirFlowperFloorArea()
        oa_rate = dsn_oa.outdoorAirFlowRate()
        oa_for_volume = volume * dsn_oa.outdoorAirFlowAirChangesperHour() / 3600

        oa_method = dsn_oa.outdoorAirMethod()
        if oa_method == 'Maximum':
            sum_oa_rate += max([oa_for_people, oa_for_floor_area, oa_rate, oa_for_volume])
        elif oa_method == 'Sum':
            sum_oa_for_people += oa_for_people
            sum_oa_for_floor_area += oa_for_floor_area
            sum_oa_rate += oa_rate
            sum_oa_for_volume += oa_for_volume
        elif oa_method == 'Flow/Person':
            sum_oa_for_people += oa_for_people
        elif oa_method == 'Flow/Area':
            sum_oa_for_floor_area += oa_for_floor_area
        elif oa_method == 'Flow/Zone':
            sum_oa_rate += oa_rate
        elif oa_method == 'AirChanges/Hour':
            sum_oa_for_volume += oa_for_volume

    tot_oa_flow_rate += sum_oa_for_people
    tot_oa_flow_rate += sum_oa_for_floor_area
    tot_oa_flow_rate += sum_oa_rate
    tot_oa_flow_rate += sum_oa_for_volume

    # Convert to cfm
    tot_oa_flow_rate_cfm = openstudio.convert(tot_oa_flow_rate, 'm^3/s', 'cfm').get()

    openstudio.logFree(openstudio.Debug, 'openstudio.standards.ThermalZone', f"For {thermal_zone.nameString()}, design min OA = {round(tot_oa_flow_rate_cfm)} cfm.")

    return tot_oa_flow_rate

def thermal_zone_primary_design_airflow_rate(thermal_zone: osmod.ThermalZone) -> tuple[float, str]:
    """
    Primary design airflow of a zone, the larger of the autosized cooling and heating design airflow.
    When the zone has not been through a sizing run, the hard sized maximum air flow rate of its VAV terminal is used.

    Parameters
    ----------
    thermal_zone : osmod.ThermalZone
        thermal zone.

    Returns
    -------
    result : tuple[float, str]
        airflow in m^3/s (None if not available) and the reason it is not available.
    """
    v_pz = None
    clg_dsn_flow = get_optional_value(thermal_zone.autosizedCoolingDesignAirFlowRate())
    htg_dsn_flow = get_optional_value(thermal_zone.autosizedHeatingDesignAirFlowRate())
    for dsn_flow in [clg_dsn_flow, htg_dsn_flow]:
        if dsn_flow != None:
            if v_pz == None or dsn_flow > v_pz:
                v_pz = dsn_flow

    if v_pz != None:
        return v_pz, None

    statuses = []
    for _, term in thermal_zone_vav_terminals(thermal_zone):
        max_flow, status = get_autosizable_value(term, 'MaximumAirFlowRate')
        if max_flow != None:
            return max_flow, None
        statuses.append(status)

    if len(statuses) == 0:
        return None, 'design air flow rates are not available and the zone has no VAV terminal'
    return None, f"design air flow rates are not available and the terminal maximum air flow rate is {statuses[0]}"
#===================================================================================================
# endregion: THERMAL ZONES
#===================================================================================================
#===================================================================================================
# region: CURVES
#===================================================================================================
def set_curve_limits(curve: osmod.Curve, data: dict, num_independent_vars: int = 1):
    if data['minimum_independent_variable_1'] != None:
        curve.setMinimumValueofx(data['minimum_independent_variable_1'])
    if data['maximum_independent_variable_1'] != None:
        curve.setMaximumValueofx(data['maximum_independent_variable_1'])
    if num_independent_vars == 2:
        if data.get('minimum_independent_variable_2') != None:
            curve.setMinimumValueofy(data['minimum_independent_variable_2'])
        if data.get('maximum_independent_variable_2') != None:
            curve.setMaximumValueofy(data['maximum_independent_variable_2'])
    if data['minimum_dependent_variable_output'] != None:
        curve.setMinimumCurveOutput(data['minimum_dependent_variable_output'])
    if data['maximum_dependent_variable_output'] != None:
        curve.setMaximumCurveOutput(data['maximum_dependent_variable_output'])

def add_curve(openstudio_model: osmod, curve_name: str) -> osmod.Curve:
    """
    - Adds a performance curve from the curves table to the model based on the curve name.
    - https://www.rubydoc.info/gems/openstudio-standards/Standard:model_add_curve

    Parameters
    ----------
    openstudio_model : osmod
        openstudio model object.

    curve_name : str
        the name of the curve.

    Returns
    -------
    res_curve : osmod.Curve
        the resultant curve, None if the curves table has no curve of that name.
    """
    # First check model and return curve if it already exists
    existing_curves = []
    existing_curves += openstudio_model.getCurveLinears()
    existing_curves += openstudio_model.getCurveQuadratics()
    existing_curves += openstudio_model.getCurveCubics()
    existing_curves += openstudio_model.getCurveBiquadratics()
    for curve in existing_curves:
        if curve.nameString() == curve_name:
            openstudio.logFree(openstudio.Debug, 'openstudio.standards.Model', f"Already added curve: {curve_name}")
            return curve

    # Find curve data
    data = rule_tables.find_obj_frm_json_based_on_type_name(settings.CURVES_PATH, 'curves', curve_name)
    if data == None:
        openstudio.logFree(openstudio.Warn, 'openstudio.standards.Model', f"Could not find a curve called '{curve_name}' in the standards.")
        return None

    # Make the correct type of curve
    crv_form = data['form']
    if crv_form == 'Linear':
        curve = osmod.CurveLinear(openstudio_model)
        curve.setName(data['name'])
        curve.setCoefficient1Constant(data['coeff_1'])
        curve.setCoefficient2x(data['coeff_2'])
        set_curve_limits(curve, data)
    elif crv_form == 'Quadratic':
        curve = osmod.CurveQuadratic(openstudio_model)
        curve.setName(data['name'])
        curve.setCoefficient1Constant(data['coeff_1'])
        curve.setCoefficient2x(data['coeff_2'])
        curve.setCoefficient3xPOW2(data['coeff_3'])
        set_curve_limits(curve, data)
    elif crv_form == 'Cubic':
        curve = osmod.CurveCubic(openstudio_model)
        curve.setName(data['name'])
        curve.setCoefficient1Constant(data['coeff_1'])
        curve.setCoefficient2x(data['coeff_2'])
        curve.setCoefficient3xPOW2(data['coeff_3'])
        curve.setCoefficient4xPOW3(data['coeff_4'])
        set_curve_limits(curve, data)
    elif crv_form == 'BiQuadratic':
        curve = osmod.CurveBiquadratic(openstudio_model)
        curve.setName(data['name'])
        curve.setCoefficient1Constant(data['coeff_1'])
        curve.setCoefficient2x(data['coeff_2'])
        curve.setCoefficient3xPOW2(data['coeff_3'])
        curve.setCoefficient4y(data['coeff_4'])
        curve.setCoefficient5yPOW2(data['coeff_5'])
        curve.setCoefficient6xTIMESY(data['coeff_6'])
        set_curve_limits(curve, data, num_independent_vars=2)
    else:
        openstudio.logFree(openstudio.Warn, 'openstudio.standards.Model', f"'{curve_name}' has an invalid form: '{crv_form}', cannot create this curve.")
        return None

    return curve
#===================================================================================================
# endregion: CURVES
#===================================================================================================
#===================================================================================================
# region: MODEL FILES
#===================================================================================================
def read_osm_file(osm_path: str) -> osmod:
    vt = openstudio.osversion.VersionTranslator()
    osmodel = vt.loadModel(openstudio.toPath(str(osm_path)))
    if osmodel.empty() == False:
        osmodel = osmodel.get()
    else:
        raise RuntimeError(f"Failed to load OSM file: {osm_path}")

    return osmodel

def add_design_days_and_weather_file(openstudio_model: osmod, epw_path: str, ddy_path: str):
    """
    Add WeatherFile, Site, SiteGroundTemperatureBuildingSurface, SiteWaterMainsTemperature and DesignDays to the model using information from epw and ddy files.

    Parameters
    ----------
    openstudio_model : osmod
        openstudio model object.

    epw_path : str
        path to epw file.

    ddy_path : str
        path to ddy file.
    """
    epw_file = openstudio.openstudioutilitiesfiletypes.EpwFile(epw_path)
    oswf = openstudio_model.getWeatherFile()
    oswf.setWeatherFile(openstudio_model, epw_file)
    weather_name = epw_file.city() + '_' + epw_file.stateProvinceRegion() + '_' + epw_file.country()

    # Add or update site data
    site = openstudio_model.getSite()
    site.setName(weather_name)
    site.setLatitude(epw_file.latitude())
    site.setLongitude(epw_file.longitude())
    site.setTimeZone(epw_file.timeZone())
    site.setElevation(epw_file.elevation())

    lb_epw = EPW(epw_path)
    grd_temps_0_5 = lb_epw.monthly_ground_temperature[0.5]
    osm_sitegrd = osmod.SiteGroundTemperatureBuildingSurface(openstudio_model)
    for i, grd_temp in enumerate(grd_temps_0_5):
        osm_sitegrd.setTemperatureByMonth(i+1, grd_temp)

    water_temp = openstudio_model.getSiteWaterMainsTemperature()
    water_temp.setAnnualAverageOutdoorAirTemperature(lb_epw.dry_bulb_temperature.average)
    db_mthly_bounds = lb_epw.dry_bulb_temperature.average_monthly().bounds
    water_temp.setMaximumDifferenceInMonthlyAverageOutdoorAirTemperatures(db_mthly_bounds[1] - db_mthly_bounds[0])

    # Remove any existing Design Day objects that are in the file
    for dgndy in openstudio_model.getDesignDays():
        dgndy.remove()

    rev_translate = openstudio.energyplus.ReverseTranslator()
    ddy_mod = rev_translate.loadModel(ddy_path)
    if ddy_mod.empty() == False:
        ddy_mod = ddy_mod.get()
        designday_objs = ddy_mod.getObjectsByType('OS:SizingPeriod:DesignDay')
        for dd in designday_objs:
            ddy_name = dd.name().get()
            if 'Htg 99.6% Condns DB' in ddy_name or 'Clg .4% Condns DB=>MWB' in ddy_name:
                openstudio_model.addObject(dd.clone())

def model_replace_with_alternative(openstudio_model: osmod, alternative_model: osmod) -> dict:
    """
    Replace all the objects of a model with those of an alternative model, keeping the weather file and design days of the original model.

    Parameters
    ----------
    openstudio_model : osmod
        the model to replace, modified in place.

    alternative_model : osmod
        the model whose content replaces the original, its weather file and design days are discarded.

    Returns
    -------
    result : dict
        - removed_alternative_weather_file : bool
        - kept_weather_file : bool
        - num_design_days : int, number of design days carried over
    """
    result = {'removed_alternative_weather_file': False, 'kept_weather_file': False, 'num_design_days': 0}

    # pull original weather file object over
    weather_file = alternative_model.getOptionalWeatherFile()
    if weather_file.empty() == False:
        weather_file.get().remove()
        result['removed_alternative_weather_file'] = True

    original_weather_file = openstudio_model.getOptionalWeatherFile()
    if original_weather_file.empty() == False:
        original_weather_file.get().clone(alternative_model)
        result['kept_weather_file'] = True

    # pull original design days over
    for dgndy in alternative_model.getDesignDays():
        dgndy.remove()
    for dgndy in openstudio_model.getDesignDays():
        dgndy.clone(alternative_model)
        result['num_design_days'] += 1

    # swap underlying data in the model with the data of the alternative model
    handles = openstudio.UUIDVector()
    for obj in openstudio_model.objects():
        handles.append(obj.handle())
    openstudio_model.removeObjects(handles)
    openstudio_model.addObjects(alternative_model.toIdfFile().objects())
    return result
#===================================================================================================
# endregion: MODEL FILES
#===================================================================================================
#===================================================================================================
# region: WORKFLOW
#===================================================================================================
def get_measure_type(measure_dir: str) -> int:
    """
    get the measure type of the measure by reading its xml

    Returns
    -------
    measure_type : int
        0=ModelMeasure, 1=EnergyPlusMeasure, 2=UtilityMeasure, 3=ReportingMeasure, None if not specified.
    """
    measure_xmlpath = str(Path(measure_dir).joinpath('measure.xml'))
    tree = ET.parse(measure_xmlpath)
    root = tree.getroot()
    measure_type_int = None
    for child in root:
        if child.tag == 'attributes':
            for child2 in child:
                name = child2.find('name').text
                if name == 'Measure Type':
                    measure_type_int = MEASURE_TYPES.get(child2.find('value').text)
    return measure_type_int

def save_osw_project(proj_dir: str, openstudio_model: osmod, measure_list: list[dict], proj_name: str) -> str:
    """
    Save the model and an OpenStudio workflow that applies the measures to it.

    Parameters
    ----------
    proj_dir : str
        the directory to save the osm file and the workflow directory in.

    openstudio_model : osmod
        openstudio model object.

    measure_list : list[dict]
        the measures, each with a 'dir' and optionally 'arguments', a list of {'argument': name, 'value': value}.

    proj_name : str
        name of the project.

    Returns
    -------
    wrkflw_path : str
        path of the osw file.
    """
    # create all the necessary directory
    proj_path = Path(proj_dir)
    wrkflow_dir = proj_path.joinpath(proj_name + '_wrkflw')
    for dir_name in ['files', 'measures', 'run']:
        wrkflow_dir.joinpath(dir_name).mkdir(parents=True, exist_ok=True)

    # create the osm file
    osm_filename = proj_name + '.osm'
    osm_path = proj_path.joinpath(osm_filename)
    openstudio_model.save(str(osm_path), True)

    # retrieve the osw file
    oswrkflw = openstudio_model.workflowJSON()
    oswrkflw.setSeedFile('../' + osm_filename)

    # measure type 0=ModelMeasure, 1=EnergyPlusMeasure, 2=UtilityMeasure, 3=ReportingMeasure
    msteps = {0: [], 1: [], 2: [], 3: []}
    for measure_folder in measure_list:
        measure_dir_orig = measure_folder['dir']

        foldername = Path(measure_dir_orig).stem
        measure_dir_dest = str(wrkflow_dir.joinpath('measures', foldername))
        shutil.copytree(measure_dir_orig, measure_dir_dest, dirs_exist_ok=True)
        # set measurestep
        mstep = openstudio.MeasureStep(measure_dir_dest)
        mstep.setName(foldername)
        if 'arguments' in measure_folder.keys():
            for argument in measure_folder['arguments']:
                mstep.setArgument(argument['argument'], argument['value'])

        measure_type_int = get_measure_type(measure_dir_orig)
        if measure_type_int == None:
            raise RuntimeError(f"Measure Type is not specified in {measure_dir_orig}/measure.xml")
        msteps[measure_type_int].append(mstep)

    for mt_val in msteps.keys():
        measure_steps = msteps[mt_val]
        if len(measure_steps) != 0:
            oswrkflw.setMeasureSteps(openstudio.MeasureType(mt_val), measure_steps)

    wrkflw_path = str(wrkflow_dir.joinpath(proj_name + '.osw'))
    oswrkflw.saveAs(wrkflw_path)
    with open(wrkflw_path) as wrkflw_f:
        data = json.load(wrkflw_f)
        for step in data.get('steps', []):
            step['measure_dir_name'] = Path(step['measure_dir_name']).stem

    with open(wrkflw_path, "w") as out_file:
        json.dump(data, out_file)

    return wrkflw_path

def execute_workflow(wrkflow_path: str):
    print('executing workflow ...')
    result = subprocess.run(['openstudio', 'run', '-w', wrkflow_path], capture_output=True, text=True)
    print(result.stdout)
    if result.returncode != 0:
        raise RuntimeError(f"openstudio run failed for {wrkflow_path}:\n{result.stderr}")
#===================================================================================================
# endregion: WORKFLOW
#===================================================================================================
