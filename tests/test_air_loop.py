import pytest
import openstudio
from openstudio import model as osmod

from osmod_std import air_loop as osair_loop
from osmod_std import openstudio_utils

CZ_5A = 'ASHRAE 169-2006-5A'
CZ_6A = 'ASHRAE 169-2006-6A'
CZ_6B = 'ASHRAE 169-2006-6B'

def zone_min_fractions(air_loop: osmod.AirLoopHVAC) -> dict:
    fractions = {}
    for zone in air_loop.thermalZones():
        for variant, term in openstudio_utils.thermal_zone_vav_terminals(zone):
            fractions[zone.nameString()] = openstudio_utils.air_terminal_minimum_airflow_fraction(variant, term)
    return fractions

def controller_oa(air_loop: osmod.AirLoopHVAC) -> osmod.ControllerOutdoorAir:
    return air_loop.airLoopHVACOutdoorAirSystem().get().getControllerOutdoorAir()

class TestMinimumVAVDamperPositions:
    def test_two_zone_scenario(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=0.3)
        res = osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)

        assert res['success'] == True
        assert res['num_zones_adj'] == 1
        assert res['e_v'] == pytest.approx(0.5833, abs=1e-4)
        assert res['e_v_adj'] == pytest.approx(0.6)

        fractions = zone_min_fractions(air_loop)
        assert fractions['Zone A'] == pytest.approx(0.3077, abs=1e-4)
        assert fractions['Zone B'] == pytest.approx(0.5)

    def test_second_pass_changes_nothing(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)
        fractions = zone_min_fractions(air_loop)

        res2 = osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)
        assert res2['num_zones_adj'] == 0
        assert zone_min_fractions(air_loop) == fractions

    def test_unsized_zone_is_reported(self, osm, vav_loop_factory):
        zones = [{'name': 'Zone A', 'v_bz': 0.2, 'v_pz': None, 'mdp': 0.3},
                 {'name': 'Zone B', 'v_bz': 0.1, 'v_pz': 1.0, 'mdp': 0.5}]
        air_loop = vav_loop_factory(osm, 1.2, zones)
        res = osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)

        assert res['success'] == False
        assert res['failures'][0]['name'] == 'Zone A'
        assert 'autosized but not yet sized' in res['failures'][0]['reason']
        assert [zone['name'] for zone in res['zones']] == ['Zone B']
        assert zone_min_fractions(air_loop)['Zone A'] == pytest.approx(0.3)

    def test_closed_damper_zone_is_reported(self, osm, vav_loop_factory):
        # Zone C has no minimum discharge airflow, x_s = 0.3 / 1.2 still counts its outdoor air
        zones = [{'name': 'Zone A', 'v_bz': 0.2, 'v_pz': 1.0, 'mdp': 0.3},
                 {'name': 'Zone C', 'v_bz': 0.1, 'v_pz': 1.0, 'mdp': 0.0}]
        air_loop = vav_loop_factory(osm, 1.2, zones)
        res = osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)

        assert res['success'] == False
        assert res['x_s'] == pytest.approx(0.25)
        assert [failure['name'] for failure in res['failures']] == ['Zone C']
        assert [zone['name'] for zone in res['zones']] == ['Zone A']
        assert res['num_zones_adj'] == 1

        fractions = zone_min_fractions(air_loop)
        assert fractions['Zone A'] == pytest.approx(0.3077, abs=1e-4)
        assert fractions['Zone C'] == 0.0

    def test_unknown_system_flow_writes_nothing(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        air_loop.autosizeDesignSupplyAirFlowRate()
        res = osair_loop.air_loop_set_minimum_vav_damper_positions(air_loop)

        assert res['success'] == False
        assert res['zones'] == []
        assert zone_min_fractions(air_loop) == {'Zone A': pytest.approx(0.3), 'Zone B': pytest.approx(0.5)}

    def test_inputs(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        v_ps, zones = osair_loop.air_loop_minimum_vav_damper_inputs(air_loop)
        assert v_ps == pytest.approx(1.2)
        zones = sorted(zones, key=lambda zone: zone['name'])
        assert zones[0]['v_bz'] == pytest.approx(0.2)
        assert zones[0]['v_pz'] == pytest.approx(1.0)
        assert zones[0]['mdp'] == pytest.approx(0.3)

class TestSystemType:
    def test_multizone_vav_system(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        assert osair_loop.air_loop_multizone_vav_system(air_loop) == True

    def test_constant_volume_is_not_multizone_vav(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], fan_type='FanConstantVolume')
        assert osair_loop.air_loop_multizone_vav_system(air_loop) == False

    def test_single_zone_is_not_multizone_vav(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'][:1])
        assert osair_loop.air_loop_multizone_vav_system(air_loop) == False

    def test_supply_fan(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        fan_type, fan = osair_loop.air_loop_supply_fan(air_loop)
        assert fan_type == 'FanVariableVolume'
        assert fan.nameString() == 'Supply Fan'

class TestEconomizer:
    def test_required_by_capacity(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        coil = osmod.CoilCoolingDXSingleSpeed(osm)
        coil.setRatedTotalCoolingCapacity(20000.0)
        coil.addToNode(air_loop.supplyOutletNode())

        assert osair_loop.air_loop_total_cooling_capacity(air_loop) == pytest.approx(20000.0)
        assert osair_loop.air_loop_economizer_required(air_loop, '90.1-2010', CZ_5A) == True
        assert osair_loop.air_loop_economizer_required(air_loop, '90.1-2010', 'ASHRAE 169-2006-1A') == False

    def test_apply_drybulb_limit(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], economizer_type='FixedDryBulb')
        assert osair_loop.air_loop_apply_economizer_limits(air_loop, '90.1-2010', CZ_6A) == True

        limit_c = controller_oa(air_loop).getEconomizerMaximumLimitDryBulbTemperature().get()
        assert limit_c == pytest.approx(openstudio.convert(70.0, 'F', 'C').get())

    def test_apply_enthalpy_limit(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], economizer_type='FixedEnthalpy')
        assert osair_loop.air_loop_apply_economizer_limits(air_loop, '90.1-2007', CZ_6B) == True

        limit_j_per_kg = controller_oa(air_loop).getEconomizerMaximumLimitEnthalpy().get()
        assert limit_j_per_kg == pytest.approx(openstudio.convert(28.0, 'Btu/lb', 'J/kg').get())

    def test_no_economizer(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        assert osair_loop.air_loop_has_economizer(air_loop) == False
        assert osair_loop.air_loop_apply_economizer_limits(air_loop, '90.1-2010', CZ_6A) == False
        assert osair_loop.air_loop_economizer_type_allowable(air_loop, '90.1-2010', CZ_6A) == True

    def test_no_oa_system(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], with_oa=False)
        assert osair_loop.air_loop_apply_economizer_limits(air_loop, '90.1-2010', CZ_6A) == False
        assert osair_loop.air_loop_apply_economizer_integration(air_loop, '90.1-2010', CZ_6A) == False
        assert osair_loop.air_loop_economizer_type_allowable(air_loop, '90.1-2010', CZ_6A) == True

    def test_type_not_allowable(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], economizer_type='FixedEnthalpy')
        assert osair_loop.air_loop_economizer_type_allowable(air_loop, '90.1-2010', 'ASHRAE 169-2006-5C') == False
        assert osair_loop.air_loop_economizer_type_allowable(air_loop, '90.1-2010', CZ_5A) == True

    def test_integration(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], economizer_type='FixedDryBulb')
        # multizone VAV is exempt from integration before 90.1-2010
        assert osair_loop.air_loop_apply_economizer_integration(air_loop, '90.1-2007', CZ_5A) == True
        assert controller_oa(air_loop).getLockoutType() == 'LockoutWithCompressor'

        assert osair_loop.air_loop_apply_economizer_integration(air_loop, '90.1-2010', CZ_5A) == True
        assert controller_oa(air_loop).getLockoutType() == 'NoLockout'

    def test_integration_counts_vav_terminals(self, osm, vav_loop_factory, two_zone_scenario):
        # constant volume fan feeding VAV terminals, 85 kBtu/hr of DX cooling
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], economizer_type='FixedDryBulb',
                                    fan_type='FanConstantVolume')
        clg_coil = osmod.CoilCoolingDXTwoSpeed(osm)
        clg_coil.setRatedHighSpeedTotalCoolingCapacity(25000.0)
        clg_coil.addToNode(air_loop.supplyOutletNode())
        assert osair_loop.air_loop_has_vav_terminals(air_loop) == True

        assert osair_loop.air_loop_apply_economizer_integration(air_loop, '90.1-2007', 'ASHRAE 169-2006-3B') == True
        assert controller_oa(air_loop).getLockoutType() == 'LockoutWithCompressor'

    def test_constant_volume_loop_without_vav_terminals(self, osm):
        air_loop = osmod.AirLoopHVAC(osm)
        fan = osmod.FanConstantVolume(osm)
        fan.addToNode(air_loop.supplyOutletNode())
        clg_coil = osmod.CoilCoolingDXTwoSpeed(osm)
        clg_coil.setRatedHighSpeedTotalCoolingCapacity(25000.0)
        clg_coil.addToNode(air_loop.supplyOutletNode())
        oa_sys = osmod.AirLoopHVACOutdoorAirSystem(osm, osmod.ControllerOutdoorAir(osm))
        oa_sys.addToNode(air_loop.supplyInletNode())
        for name in ['Zone A', 'Zone B']:
            zone = osmod.ThermalZone(osm)
            zone.setName(name)
            term = osmod.AirTerminalSingleDuctConstantVolumeNoReheat(osm, osm.alwaysOnDiscreteSchedule())
            air_loop.addBranchForZone(zone, term)
        assert osair_loop.air_loop_has_vav_terminals(air_loop) == False

        assert osair_loop.air_loop_apply_economizer_integration(air_loop, '90.1-2007', 'ASHRAE 169-2006-3B') == True
        assert controller_oa(air_loop).getLockoutType() == 'NoLockout'

class TestVentilationRequirements:
    def test_erv_required(self, osm, vav_loop_factory, two_zone_scenario):
        # 83% OA at 2543 cfm exceeds the 1500 cfm threshold
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=1.0)
        assert osair_loop.air_loop_energy_recovery_ventilator_required(air_loop, '90.1-2010', CZ_6B) == True
        assert osair_loop.air_loop_energy_recovery_ventilator_required(air_loop, 'DOE Ref Pre-1980', 'ASHRAE 169-2006-1A') == False

    def test_erv_not_applicable_with_dcv(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=1.0)
        controller_oa(air_loop).controllerMechanicalVentilation().setDemandControlledVentilation(True)
        assert osair_loop.air_loop_energy_recovery_ventilator_required(air_loop, '90.1-2010', CZ_6B) == False

    def test_erv_unknown_min_oa(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        assert osair_loop.air_loop_energy_recovery_ventilator_required(air_loop, '90.1-2010', CZ_6B) == False

    def test_multizone_optimization_required(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=0.3)
        assert osair_loop.air_loop_multizone_vav_optimization_required(air_loop, '90.1-2010', CZ_6A) == True
        assert osair_loop.air_loop_multizone_vav_optimization_required(air_loop, '90.1-2007', CZ_6A) == False

    def test_multizone_optimization_not_required_with_erv(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=1.0)
        assert osair_loop.air_loop_multizone_vav_optimization_required(air_loop, '90.1-2010', CZ_6A) == False

    def test_enable_and_disable_multizone_optimization(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        controller_mv = controller_oa(air_loop).controllerMechanicalVentilation()

        assert osair_loop.air_loop_enable_multizone_vav_optimization(air_loop) == True
        assert controller_mv.systemOutdoorAirMethod() == openstudio_utils.ventilation_rate_procedure_method()

        assert osair_loop.air_loop_disable_multizone_vav_optimization(air_loop) == True
        assert controller_mv.systemOutdoorAirMethod() == 'ZoneSum'

    def test_dcv_required_and_enabled(self, osm, vav_loop_factory):
        # 1076 ft2, 46 people per 1000 ft2, 2119 cfm of OA with an economizer
        zones = [{'name': 'Dining', 'v_bz': 0.5, 'v_pz': 1.2, 'mdp': 0.3, 'floor_size': 10.0, 'num_people': 50}]
        air_loop = vav_loop_factory(osm, 1.2, zones, min_oa=1.0, economizer_type='FixedDryBulb')
        assert osair_loop.air_loop_demand_control_ventilation_required(air_loop, '90.1-2007', CZ_5A) == True
        assert osair_loop.air_loop_demand_control_ventilation_required(air_loop, 'DOE Ref 1980-2004', CZ_5A) == False

        assert osair_loop.air_loop_enable_demand_control_ventilation(air_loop) == True
        ctrl_oa = controller_oa(air_loop)
        assert ctrl_oa.controllerMechanicalVentilation().demandControlledVentilation() == True
        assert ctrl_oa.minimumOutdoorAirFlowRate().get() == 0.0
        # already enabled
        assert osair_loop.air_loop_enable_demand_control_ventilation(air_loop) == True

    def test_dcv_not_required_without_economizer(self, osm, vav_loop_factory):
        zones = [{'name': 'Dining', 'v_bz': 0.5, 'v_pz': 1.2, 'mdp': 0.3, 'floor_size': 10.0, 'num_people': 50}]
        air_loop = vav_loop_factory(osm, 1.2, zones, min_oa=1.0)
        assert osair_loop.air_loop_demand_control_ventilation_required(air_loop, '90.1-2007', CZ_5A) == False

    def test_dcv_no_oa_system(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], with_oa=False)
        assert osair_loop.air_loop_enable_demand_control_ventilation(air_loop) == False

class TestFanPower:
    def test_allowable_bhp_vav(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        dsn_flow_cfm = openstudio.convert(1.2, 'm^3/s', 'cfm').get()
        allowable_bhp = osair_loop.air_loop_allowable_system_brake_horsepower(air_loop, '90.1-2013')
        assert allowable_bhp == pytest.approx(dsn_flow_cfm * 0.00094)

    def test_allowable_bhp_single_zone_vav_2010(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'][:1])
        dsn_flow_cfm = openstudio.convert(1.2, 'm^3/s', 'cfm').get()
        assert osair_loop.air_loop_allowable_system_brake_horsepower(air_loop, '90.1-2010') == pytest.approx(dsn_flow_cfm * 0.0013)
        assert osair_loop.air_loop_allowable_system_brake_horsepower(air_loop, '90.1-2013') == pytest.approx(dsn_flow_cfm * 0.00094)

    def test_pressure_drop_adjustment(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        dsn_flow_cfm = openstudio.convert(1.2, 'm^3/s', 'cfm').get()
        assert osair_loop.air_loop_fan_power_limitation_pressure_drop_adjustment_bhp(air_loop, '90.1-2010') == 0.0
        adj_bhp = osair_loop.air_loop_fan_power_limitation_pressure_drop_adjustment_bhp(air_loop, '90.1-2010', True)
        assert adj_bhp == pytest.approx(0.5 * dsn_flow_cfm / 4131)

    def test_supply_return_exhaust_relief_fans(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        fans = osair_loop.air_loop_supply_return_exhaust_relief_fans(air_loop)
        assert [fan.nameString() for fan in fans] == ['Supply Fan']

    def test_apply_baseline_fan_pressure_rise(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        res = osair_loop.air_loop_apply_baseline_fan_pressure_rise(air_loop, '90.1-2013')

        assert res['success'] == True
        assert res['baseline_bhp'] == pytest.approx(res['allowable_bhp'], rel=0.02)
        fan_res = res['fans'][0]
        assert fan_res['bhp'] == pytest.approx(fan_res['target_bhp'], rel=0.02)
        assert fan_res['impeller_efficiency'] == pytest.approx(0.65)

        _, fan = osair_loop.air_loop_supply_fan(air_loop)
        assert fan.pressureRise() == pytest.approx(fan_res['pressure_rise_pa'])

    def test_apply_baseline_without_design_flow(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        air_loop.autosizeDesignSupplyAirFlowRate()
        res = osair_loop.air_loop_apply_baseline_fan_pressure_rise(air_loop, '90.1-2013')
        assert res['success'] == False
        assert len(res['failures']) == 1

    def test_apply_baseline_with_zero_flow_fan(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], with_oa=False)
        return_fan = osmod.FanConstantVolume(osm)
        return_fan.setName('Return Fan')
        return_fan.setMaximumFlowRate(0.0)
        return_fan.addToNode(air_loop.supplyInletNode())
        return_pressure_rise = return_fan.pressureRise()

        res = osair_loop.air_loop_apply_baseline_fan_pressure_rise(air_loop, '90.1-2013')
        assert res['success'] == False
        assert [failure['name'] for failure in res['failures']] == ['Return Fan']
        assert [fan_res['name'] for fan_res in res['fans']] == ['Supply Fan']
        assert return_fan.pressureRise() == return_pressure_rise

    def test_apply_baseline_with_only_zero_flow_fan(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        _, fan = osair_loop.air_loop_supply_fan(air_loop)
        fan.setMaximumFlowRate(0.0)
        res = osair_loop.air_loop_apply_baseline_fan_pressure_rise(air_loop, '90.1-2013')
        assert res['success'] == False
        assert len(res['fans']) == 0

class TestStandardControls:
    def test_apply_standard_controls(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'], min_oa=0.3,
                                    economizer_type='FixedDryBulb')
        res = osair_loop.air_loop_apply_standard_controls(air_loop, '90.1-2010', CZ_6A)

        assert res['damper_positions']['num_zones_adj'] == 1
        assert res['economizer_limits'] == True
        assert res['economizer_integration'] == True
        assert res['multizone_vav_optimization'] == True
        assert zone_min_fractions(air_loop)['Zone A'] == pytest.approx(0.3077, abs=1e-4)

        controller_mv = controller_oa(air_loop).controllerMechanicalVentilation()
        assert controller_mv.systemOutdoorAirMethod() == openstudio_utils.ventilation_rate_procedure_method()

    def test_invalid_climate_zone(self, osm, vav_loop_factory, two_zone_scenario):
        air_loop = vav_loop_factory(osm, two_zone_scenario['v_ps'], two_zone_scenario['zones'])
        with pytest.raises(ValueError):
            osair_loop.air_loop_apply_standard_controls(air_loop, '90.1-2010', '6A')
