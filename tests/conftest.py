import pytest
import openstudio
from openstudio import model as osmod

def add_zone(m: osmod.Model, name: str, v_bz: float, floor_size: float = None, num_people: float = None) -> osmod.ThermalZone:
    """
    thermal zone with one space whose outdoor air requirement is a flat v_bz in m^3/s.
    """
    if floor_size != None:
        pts = openstudio.Point3dVector()
        pts.append(openstudio.Point3d(0, 0, 0))
        pts.append(openstudio.Point3d(0, floor_size, 0))
        pts.append(openstudio.Point3d(floor_size, floor_size, 0))
        pts.append(openstudio.Point3d(floor_size, 0, 0))
        space = osmod.Space.fromFloorPrint(pts, 3.0, m).get()
    else:
        space = osmod.Space(m)

    zone = osmod.ThermalZone(m)
    zone.setName(name)
    space.setThermalZone(zone)

    dsn_oa = osmod.DesignSpecificationOutdoorAir(m)
    dsn_oa.setOutdoorAirMethod('Sum')
    dsn_oa.setOutdoorAirFlowperPerson(0.0)
    dsn_oa.setOutdoorAirFlowperFloorArea(0.0)
    dsn_oa.setOutdoorAirFlowAirChangesperHour(0.0)
    dsn_oa.setOutdoorAirFlowRate(v_bz)
    space.setDesignSpecificationOutdoorAir(dsn_oa)

    if num_people != None:
        people_def = osmod.PeopleDefinition(m)
        people_def.setNumberofPeople(num_people)
        people = osmod.People(people_def)
        people.setSpace(space)
    return zone

def make_vav_air_loop(m: osmod.Model, v_ps: float, zone_inputs: list[dict], with_oa: bool = True,
                      min_oa: float = None, economizer_type: str = None, fan_type: str = 'FanVariableVolume') -> osmod.AirLoopHVAC:
    """
    hard sized VAV air loop with a reheat VAV terminal per zone.

    zone_inputs are dictionaries with name, v_bz, v_pz, mdp and optionally floor_size and num_people.
    """
    air_loop = osmod.AirLoopHVAC(m)
    air_loop.setName('VAV System')
    air_loop.setDesignSupplyAirFlowRate(v_ps)

    fan = getattr(osmod, fan_type)(m)
    fan.setName('Supply Fan')
    fan.setMaximumFlowRate(v_ps)
    fan.addToNode(air_loop.supplyOutletNode())

    if with_oa:
        controller_oa = osmod.ControllerOutdoorAir(m)
        if min_oa != None:
            controller_oa.setMinimumOutdoorAirFlowRate(min_oa)
        if economizer_type != None:
            controller_oa.setEconomizerControlType(economizer_type)
        oa_sys = osmod.AirLoopHVACOutdoorAirSystem(m, controller_oa)
        oa_sys.addToNode(air_loop.supplyInletNode())

    sched = m.alwaysOnDiscreteSchedule()
    for zone_in in zone_inputs:
        zone = add_zone(m, zone_in['name'], zone_in['v_bz'], floor_size=zone_in.get('floor_size'), num_people=zone_in.get('num_people'))
        reheat_coil = osmod.CoilHeatingElectric(m, sched)
        term = osmod.AirTerminalSingleDuctVAVReheat(m, sched, reheat_coil)
        if zone_in.get('v_pz') != None:
            term.setMaximumAirFlowRate(zone_in['v_pz'])
        term.setConstantMinimumAirFlowFraction(zone_in['mdp'])
        air_loop.addBranchForZone(zone, term)
    return air_loop

@pytest.fixture
def osm():
    return osmod.Model()

@pytest.fixture
def two_zone_scenario():
    """
    Zone A sits below the minimum ventilation effectiveness, Zone B above it.
    """
    return {'v_ps': 1.2,
            'zones': [{'name': 'Zone A', 'v_bz': 0.2, 'v_pz': 1.0, 'mdp': 0.3},
                      {'name': 'Zone B', 'v_bz': 0.1, 'v_pz': 1.0, 'mdp': 0.5}]}

@pytest.fixture
def zone_factory():
    return add_zone

@pytest.fixture
def vav_loop_factory():
    return make_vav_air_loop
