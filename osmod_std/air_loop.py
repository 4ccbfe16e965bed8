"""
Standards methods for OpenStudio air loops: economizers, energy recovery, demand control ventilation, multizone VAV
optimization, minimum VAV damper positions and baseline fan power. All functions take the air loop and the code vintage
and climate zone explicitly and log to the openstudio.standards.AirLoopHVAC channel.
"""
import openstudio
from openstudio import model as osmod

from osmod_std import settings
from osmod_std import rule_tables
from osmod_std import ventilation
from osmod_std import openstudio_utils
from osmod_std import fans as osfans

LOG_CHANNEL = 'openstudio.standards.AirLoopHVAC'

UNITARY_TYPES = ('AirLoopHVACUnitarySystem', 'AirLoopHVACUnitaryHeatCoolVAVChangeoverBypass', 'AirLoopHVACUnitaryHeatPumpAirToAir')

UNCOVERED_COOLING_TYPES = ('CoilCoolingDXMultiSpeed', 'CoilCoolingCooledBeam', 'CoilCoolingWaterToAirHeatPumpEquationFit',
                           'AirLoopHVACUnitaryHeatPumpAirToAirMultiSpeed')

#===================================================================================================
# region: COMPONENTS
#===================================================================================================
def unitary_supply_fan(unitary_type: str, unitary: osmod.StraightComponent) -> osmod.HVACComponent:
    """
    supply fan of a unitary equipment, None if it has none.
    """
    if unitary_type == 'AirLoopHVACUnitarySystem':
        return openstudio_utils.get_optional_value(unitary.supplyFan())
    return unitary.supplyAirFan()

def unitary_cooling_coil(unitary_type: str, unitary: osmod.StraightComponent) -> osmod.HVACComponent:
    if unitary_type == 'AirLoopHVACUnitarySystem':
        return openstudio_utils.get_optional_value(unitary.coolingCoil())
    return unitary.coolingCoil()

def air_loop_supply_fan(air_loop: osmod.AirLoopHVAC) -> tuple[str, osmod.StraightComponent]:
    """
    Get the supply fan of the air loop, the fan closest to the supply outlet node. The fan may be inside a unitary equipment.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    Returns
    -------
    result : tuple[str, osmod.StraightComponent]
        the fan type and the cast fan, (None, None) if the air loop has no fan.
    """
    supply_comps = list(air_loop.supplyComponents())
    for comp in reversed(supply_comps):
        fan_type, fan = openstudio_utils.cast_model_object(comp, openstudio_utils.FAN_TYPES)
        if fan != None:
            return fan_type, fan

        unitary_type, unitary = openstudio_utils.cast_model_object(comp, UNITARY_TYPES)
        if unitary != None:
            sup_fan = unitary_supply_fan(unitary_type, unitary)
            if sup_fan != None:
                fan_type, fan = openstudio_utils.cast_model_object(sup_fan, openstudio_utils.FAN_TYPES)
                if fan != None:
                    return fan_type, fan
    return None, None

def air_loop_outdoor_air_controller(air_loop: osmod.AirLoopHVAC) -> osmod.ControllerOutdoorAir:
    """
    the outdoor air controller of the air loop, None if the air loop has no outdoor air system.
    """
    oa_sys = air_loop.airLoopHVACOutdoorAirSystem()
    if oa_sys.empty():
        return None
    return oa_sys.get().getControllerOutdoorAir()

def air_loop_design_supply_air_flow_rate(air_loop: osmod.AirLoopHVAC) -> float:
    """
    Design supply air flow rate, hard sized or autosized.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    Returns
    -------
    flow_rate : float
        flow rate in m^3/s, None if it is not available.
    """
    dsn_flow_m3_per_s, status = openstudio_utils.get_autosizable_value(air_loop, 'DesignSupplyAirFlowRate')
    if dsn_flow_m3_per_s == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()} design supply air flow rate is {status}.")
        return None

    dsn_flow_cfm = openstudio.convert(dsn_flow_m3_per_s, 'm^3/s', 'cfm').get()
    openstudio.logFree(openstudio.Debug, LOG_CHANNEL, f"* {round(dsn_flow_cfm)} cfm = {status.capitalize()} Design Supply Air Flow Rate.")
    return dsn_flow_m3_per_s

def air_loop_minimum_outdoor_air_flow_rate(air_loop: osmod.AirLoopHVAC, controller_oa: osmod.ControllerOutdoorAir) -> float:
    min_oa_flow_m3_per_s, status = openstudio_utils.get_autosizable_value(controller_oa, 'MinimumOutdoorAirFlowRate')
    if min_oa_flow_m3_per_s == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()} minimum OA flow rate of {controller_oa.nameString()} is {status}.")
    return min_oa_flow_m3_per_s

def air_loop_fan_powered_terminals(air_loop: osmod.AirLoopHVAC) -> list[tuple[str, osmod.StraightComponent]]:
    terminals = []
    for comp in air_loop.demandComponents():
        term_type, term = openstudio_utils.cast_model_object(comp, openstudio_utils.FAN_POWERED_TERMINALS)
        if term != None:
            terminals.append((term_type, term))
    return terminals

def air_loop_has_vav_terminals(air_loop: osmod.AirLoopHVAC) -> bool:
    for zone in air_loop.thermalZones():
        if len(openstudio_utils.thermal_zone_vav_terminals(zone)) != 0:
            return True
    return False

def air_loop_total_cooling_capacity(air_loop: osmod.AirLoopHVAC) -> float:
    """
    Get the total cooling capacity of the air loop, summing the cooling coils on the supply side including those inside unitary equipment.
    Handles CoilCoolingDXSingleSpeed, CoilCoolingDXTwoSpeed and CoilCoolingWater. For the water coil the design coil load is used.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    Returns
    -------
    capacity : float
        total cooling capacity in W.
    """
    comps = []
    for comp in air_loop.supplyComponents():
        unitary_type, unitary = openstudio_utils.cast_model_object(comp, UNITARY_TYPES)
        if unitary != None:
            clg_coil = unitary_cooling_coil(unitary_type, unitary)
            if clg_coil != None:
                comps.append(clg_coil)
        else:
            comps.append(comp)

    coil_capacity_fields = {'CoilCoolingDXSingleSpeed': 'RatedTotalCoolingCapacity',
                            'CoilCoolingDXTwoSpeed': 'RatedHighSpeedTotalCoolingCapacity'}

    total_cooling_capacity_w = 0.0
    for comp in comps:
        coil_type, coil = openstudio_utils.cast_model_object(comp, tuple(coil_capacity_fields.keys()) + ('CoilCoolingWater',))
        if coil != None:
            if coil_type == 'CoilCoolingWater':
                capacity_w = openstudio_utils.get_optional_value(coil.autosizedDesignCoilLoad())
            else:
                capacity_w, _ = openstudio_utils.get_autosizable_value(coil, coil_capacity_fields[coil_type])

            if capacity_w != None:
                total_cooling_capacity_w += capacity_w
            else:
                openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()} capacity of {coil.nameString()} is not available, total cooling capacity of air loop will be incorrect when applying standard.")
            continue

        uncovered_type, _ = openstudio_utils.cast_model_object(comp, UNCOVERED_COOLING_TYPES)
        if uncovered_type != None:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{air_loop.nameString()} has a cooling coil named {comp.nameString()}, whose type is not yet covered by economizer checks.")

    return total_cooling_capacity_w
#===================================================================================================
# endregion: COMPONENTS
#===================================================================================================
#===================================================================================================
# region: ECONOMIZERS
#===================================================================================================
def air_loop_has_economizer(air_loop: osmod.AirLoopHVAC) -> bool:
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        return False
    return controller_oa.getEconomizerControlType() != 'NoEconomizer'

def air_loop_economizer_required(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Determine whether or not this system is required to have an economizer.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        valid choices: 'DOE Ref Pre-1980', 'DOE Ref 1980-2004', '90.1-2004', '90.1-2007', '90.1-2010', '90.1-2013'

    climate_zone : str
        ASHRAE climate zone e.g. 'ASHRAE 169-2006-5A'.

    Returns
    -------
    required : bool
        True if an economizer is required.
    """
    minimum_capacity_btu_per_hr = rule_tables.economizer_minimum_capacity_btu_per_hr(template, climate_zone)
    if minimum_capacity_btu_per_hr == None:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {climate_zone}: {air_loop.nameString()}: economizers are not required.")
        return False

    minimum_capacity_w = openstudio.convert(minimum_capacity_btu_per_hr, 'Btu/hr', 'W').get()
    return air_loop_total_cooling_capacity(air_loop) >= minimum_capacity_w

def air_loop_apply_economizer_limits(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Set the economizer limits per the standard. Limits are based on the economizer type currently specified in the ControllerOutdoorAir object on this air loop.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    success : bool
        False if the air loop has no OA system or no economizer.
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        return False

    economizer_type = controller_oa.getEconomizerControlType()
    if economizer_type == 'NoEconomizer':
        return False

    limits = rule_tables.economizer_limits(template, climate_zone, economizer_type)
    drybulb_limit_f = limits['drybulb_limit_f']
    enthalpy_limit_btu_per_lb = limits['enthalpy_limit_btu_per_lb']
    dewpoint_limit_f = limits['dewpoint_limit_f']

    msg_prefix = f"For {template} {climate_zone}: {air_loop.nameString()}: Economizer type = {economizer_type}"
    if economizer_type == 'FixedDryBulb':
        if drybulb_limit_f != None:
            drybulb_limit_c = openstudio.convert(drybulb_limit_f, 'F', 'C').get()
            controller_oa.setEconomizerMaximumLimitDryBulbTemperature(drybulb_limit_c)
            openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix}, dry bulb limit = {drybulb_limit_f}F")
    elif economizer_type == 'FixedEnthalpy':
        if enthalpy_limit_btu_per_lb != None:
            enthalpy_limit_j_per_kg = openstudio.convert(enthalpy_limit_btu_per_lb, 'Btu/lb', 'J/kg').get()
            controller_oa.setEconomizerMaximumLimitEnthalpy(enthalpy_limit_j_per_kg)
            openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix}, enthalpy limit = {enthalpy_limit_btu_per_lb}Btu/lb")
    elif economizer_type == 'FixedDewPointAndDryBulb':
        if drybulb_limit_f != None and dewpoint_limit_f != None:
            drybulb_limit_c = openstudio.convert(drybulb_limit_f, 'F', 'C').get()
            dewpoint_limit_c = openstudio.convert(dewpoint_limit_f, 'F', 'C').get()
            controller_oa.setEconomizerMaximumLimitDryBulbTemperature(drybulb_limit_c)
            controller_oa.setEconomizerMaximumLimitDewpointTemperature(dewpoint_limit_c)
            openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix}, dry bulb limit = {drybulb_limit_f}F, dew-point limit = {dewpoint_limit_f}F")

    return True

def air_loop_apply_economizer_integration(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Set the economizer to integrated or non-integrated per 6.5.1.3. Assumes that an economizer is required at all, see air_loop_economizer_required.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    success : bool
        False if the air loop has no OA system.
    """
    fan_type, _ = air_loop_supply_fan(air_loop)
    is_vav = fan_type == 'FanVariableVolume' or air_loop_has_vav_terminals(air_loop)
    num_zones_served = len(air_loop.thermalZones())
    total_cooling_capacity_w = air_loop_total_cooling_capacity(air_loop)

    integrated, exception = rule_tables.integrated_economizer_required(template, climate_zone, is_vav, num_zones_served,
                                                                       total_cooling_capacity_w)

    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        return False

    if integrated:
        controller_oa.setLockoutType('NoLockout')
    else:
        controller_oa.setLockoutType('LockoutWithCompressor')
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {climate_zone}: {air_loop.nameString()}: non-integrated economizer per 6.5.1.3 {exception}.")
    return True

def air_loop_economizer_type_allowable(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Check the economizer type currently specified in the ControllerOutdoorAir object on this air loop is acceptable per the standard.

    Returns
    -------
    allowable : bool
        True if allowable or if the system has no economizer or no OA system.
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        return True

    economizer_type = controller_oa.getEconomizerControlType()
    if economizer_type == 'NoEconomizer':
        return True

    prohibited_types = rule_tables.prohibited_economizer_types(template, climate_zone)
    if economizer_type in prohibited_types:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {template} {climate_zone}: {air_loop.nameString()}: economizer type {economizer_type} is not allowed.")
        return False
    return True
#===================================================================================================
# endregion: ECONOMIZERS
#===================================================================================================
#===================================================================================================
# region: VENTILATION
#===================================================================================================
def air_loop_outdoor_air_fraction(air_loop: osmod.AirLoopHVAC, controller_oa: osmod.ControllerOutdoorAir) -> tuple[float, float]:
    """
    Fraction of outdoor air at design flow.

    Returns
    -------
    result : tuple[float, float]
        the outdoor air fraction and the design supply flow in m^3/s, (None, None) if either flow is not available.
    """
    dsn_flow_m3_per_s = air_loop_design_supply_air_flow_rate(air_loop)
    if dsn_flow_m3_per_s == None or dsn_flow_m3_per_s <= 0:
        return None, None

    min_oa_flow_m3_per_s = air_loop_minimum_outdoor_air_flow_rate(air_loop, controller_oa)
    if min_oa_flow_m3_per_s == None:
        return None, None

    return min_oa_flow_m3_per_s / dsn_flow_m3_per_s, dsn_flow_m3_per_s

def air_loop_energy_recovery_ventilator_required(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Check if ERV is required on this air loop per Table 6.5.6.1.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    required : bool
        True if required. False when DCV is enabled, the system has no OA intake or the flows are not available.
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, ERV not applicable because it has no OA intake.")
        return False

    controller_mv = controller_oa.controllerMechanicalVentilation()
    if controller_mv.demandControlledVentilation() == True:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, ERV not applicable because DCV enabled.")
        return False

    pct_oa, dsn_flow_m3_per_s = air_loop_outdoor_air_fraction(air_loop, controller_oa)
    if pct_oa == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, cannot determine if ERV is required because the design flows are not available.")
        return False

    dsn_flow_cfm = openstudio.convert(dsn_flow_m3_per_s, 'm^3/s', 'cfm').get()
    erv_cfm = rule_tables.erv_minimum_flow_cfm(template, climate_zone, pct_oa)

    msg = f"For {template} {air_loop.nameString()}, ERV {{}} based on {round(pct_oa * 100)}% OA flow, design flow of {round(dsn_flow_cfm)}cfm, and climate zone {climate_zone}."
    if erv_cfm == None:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, msg.format('not required'))
        return False
    elif dsn_flow_cfm < erv_cfm:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, msg.format('not required') + f" Does not exceed minimum flow requirement of {erv_cfm}cfm.")
        return False

    openstudio.logFree(openstudio.Info, LOG_CHANNEL, msg.format('required') + f" Exceeds minimum flow requirement of {erv_cfm}cfm.")
    return True

def air_loop_multizone_vav_system(air_loop: osmod.AirLoopHVAC) -> bool:
    """
    Determine if the system is a multizone VAV system, it serves more than one zone and has a variable volume supply fan.
    """
    if len(air_loop.thermalZones()) < 2:
        return False

    for comp in air_loop.supplyComponents():
        if comp.to_FanVariableVolume().is_initialized():
            return True
    return False

def air_loop_multizone_vav_optimization_required(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Determine if multizone vav optimization is required.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    required : bool
        True if required.
    """
    rule = rule_tables.multizone_vav_optimization_rule(template)
    if rule['applicable'] == False:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, multizone vav optimization is not required before 90.1-2010.")
        return False

    num_fan_powered_terminals = len(air_loop_fan_powered_terminals(air_loop))
    if num_fan_powered_terminals > 0:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {climate_zone}: {air_loop.nameString()}, multizone vav optimization is not required because the system has {num_fan_powered_terminals} fan-powered terminals.")
        return False

    if air_loop_energy_recovery_ventilator_required(air_loop, template, climate_zone):
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {climate_zone}: {air_loop.nameString()}: multizone vav optimization is not required because the system has Energy Recovery.")
        return False

    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, multizone optimization is not applicable because system has no OA intake.")
        return False

    pct_oa, _ = air_loop_outdoor_air_fraction(air_loop, controller_oa)
    if pct_oa == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, cannot determine if multizone optimization is required because the design flows are not available.")
        return False

    max_oa_fraction = rule['maximum_oa_fraction']
    if pct_oa > max_oa_fraction:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {controller_oa.nameString()} multizone optimization is not applicable because system is more than {round(max_oa_fraction * 100)}% OA.")
        return False

    return True

def air_loop_enable_multizone_vav_optimization(air_loop: osmod.AirLoopHVAC) -> bool:
    """
    Enable multizone vav optimization by changing the Outdoor Air Method in the Controller:MechanicalVentilation object to the ventilation rate procedure
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()}, cannot enable multizone vav optimization because the system has no OA intake.")
        return False
    controller_mv = controller_oa.controllerMechanicalVentilation()
    return controller_mv.setSystemOutdoorAirMethod(openstudio_utils.ventilation_rate_procedure_method())

def air_loop_disable_multizone_vav_optimization(air_loop: osmod.AirLoopHVAC) -> bool:
    """
    Disable multizone vav optimization by changing the Outdoor Air Method in the Controller:MechanicalVentilation object to 'ZoneSum'
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()}, cannot disable multizone vav optimization because the system has no OA intake.")
        return False
    controller_mv = controller_oa.controllerMechanicalVentilation()
    return controller_mv.setSystemOutdoorAirMethod('ZoneSum')

def air_loop_demand_control_ventilation_required(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> bool:
    """
    Determine if demand control ventilation (DCV) is required for this air loop.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    required : bool
        True if required.
    """
    msg_prefix = f"For {template} {climate_zone}: {air_loop.nameString()}: DCV is not required"
    limits = rule_tables.dcv_limits(template)
    if limits['required'] == False:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} for any system.")
        return False

    if air_loop_energy_recovery_ventilator_required(air_loop, template, climate_zone):
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} since the system is required to have Energy Recovery.")
        return False

    # area served and number of occupants
    area_served_m2 = 0.0
    num_people = 0.0
    for zone in air_loop.thermalZones():
        for space in zone.spaces():
            area_served_m2 += space.floorArea()
            num_people += space.numberOfPeople()

    area_served_ft2 = openstudio.convert(area_served_m2, 'm^2', 'ft^2').get()
    min_area_ft2 = limits['minimum_area_ft2']
    if area_served_ft2 <= 0 or area_served_ft2 < min_area_ft2:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} since the system serves {round(area_served_ft2)} ft2, but the minimum size is {round(min_area_ft2)} ft2.")
        return False

    occ_per_1000_ft2 = num_people / area_served_ft2 * 1000
    min_occ_per_1000_ft2 = limits['minimum_occupants_per_1000_ft2']
    if occ_per_1000_ft2 < min_occ_per_1000_ft2:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} since the system occupant density is {round(occ_per_1000_ft2)} people/1000 ft2, but the minimum occupant density is {round(min_occ_per_1000_ft2)} people/1000 ft2.")
        return False

    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, DCV not applicable because it has no OA intake.")
        return False

    oa_flow_m3_per_s = air_loop_minimum_outdoor_air_flow_rate(air_loop, controller_oa)
    if oa_flow_m3_per_s == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {template} {air_loop.nameString()}, cannot determine if DCV is required because the minimum OA flow rate is not available.")
        return False
    oa_flow_cfm = openstudio.convert(oa_flow_m3_per_s, 'm^3/s', 'cfm').get()

    has_economizer = air_loop_has_economizer(air_loop)
    if has_economizer == False:
        min_oa_cfm = limits['minimum_oa_without_economizer_cfm']
        if oa_flow_cfm < min_oa_cfm:
            openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} since the system does not have an economizer and the min oa flow is {round(oa_flow_cfm)} cfm, less than the minimum of {round(min_oa_cfm)} cfm.")
            return False
    else:
        min_oa_cfm = limits['minimum_oa_with_economizer_cfm']
        if oa_flow_cfm < min_oa_cfm:
            openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix} since the system has an economizer, but the min oa flow is {round(oa_flow_cfm)} cfm, less than the minimum of {round(min_oa_cfm)} cfm for systems with an economizer.")
            return False

    return True

def air_loop_enable_demand_control_ventilation(air_loop: osmod.AirLoopHVAC) -> bool:
    """
    Enable demand control ventilation (DCV) for this air loop. The minimum outdoor air flow rate of the controller is set to 0.

    Returns
    -------
    success : bool
        True if DCV is enabled or was already enabled, False if the system has no OA intake.
    """
    controller_oa = air_loop_outdoor_air_controller(air_loop)
    if controller_oa == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()}: Could not enable DCV since the system has no OA intake.")
        return False

    controller_mv = controller_oa.controllerMechanicalVentilation()
    if controller_mv.demandControlledVentilation() == True:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {air_loop.nameString()}: DCV was already enabled.")
        return True

    controller_oa.setMinimumOutdoorAirFlowRate(0.0)
    controller_mv.setDemandControlledVentilation(True)
    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {air_loop.nameString()}: DCV enabled.")
    return True
#===================================================================================================
# endregion: VENTILATION
#===================================================================================================
#===================================================================================================
# region: DAMPER POSITIONS
#===================================================================================================
def air_loop_minimum_vav_damper_inputs(air_loop: osmod.AirLoopHVAC) -> tuple[float, list[dict]]:
    """
    Read the system and zone flows the damper position adjustment needs from the model.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    Returns
    -------
    result : tuple[float, list[dict]]
        the system primary airflow v_ps in m^3/s (None if not available) and per zone the name, v_bz, v_pz, mdp and, when a value is missing, the reason.
    """
    v_ps, _ = openstudio_utils.get_autosizable_value(air_loop, 'DesignSupplyAirFlowRate')

    zones = []
    for zone in air_loop.thermalZones():
        v_bz = openstudio_utils.thermal_zone_outdoor_airflow_rate(zone)
        v_pz, reason = openstudio_utils.thermal_zone_primary_design_airflow_rate(zone)

        mdp = None
        terminals = openstudio_utils.thermal_zone_vav_terminals(zone)
        for variant, term in terminals:
            mdp = openstudio_utils.air_terminal_minimum_airflow_fraction(variant, term)

        if mdp == None:
            reason = 'the zone has no VAV terminal'

        zone_inputs = {'name': zone.nameString(), 'v_bz': v_bz, 'v_pz': v_pz, 'mdp': mdp}
        if reason != None:
            zone_inputs['reason'] = reason
        zones.append(zone_inputs)

    return v_ps, zones

def air_loop_set_minimum_vav_damper_positions(air_loop: osmod.AirLoopHVAC) -> dict:
    """
    Increase the minimum damper positions of the VAV terminals so that every zone on the system has a ventilation effectiveness of at least 0.6.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    Returns
    -------
    result : dict
        the result of ventilation.adjust_minimum_damper_positions, with the air loop name under 'air_loop'.
    """
    v_ps, zone_inputs = air_loop_minimum_vav_damper_inputs(air_loop)
    result = ventilation.adjust_minimum_damper_positions(v_ps, zone_inputs)
    result['air_loop'] = air_loop.nameString()

    for failure in result['failures']:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {air_loop.nameString()}: cannot determine the ventilation effectiveness of {failure['name']}, {failure['reason']}.")

    if result['x_s'] == None:
        openstudio.logFree(openstudio.Error, LOG_CHANNEL, f"For {air_loop.nameString()}: minimum damper positions not set because the outdoor air fraction of the system is unknown.")
        return result

    zones_by_name = {}
    for zone in air_loop.thermalZones():
        zones_by_name[zone.nameString()] = zone

    for zone_res in result['zones']:
        if zone_res['adjusted'] == False:
            continue
        zone = zones_by_name[zone_res['name']]
        mdp_adj = zone_res['mdp_adj']
        for variant, term in openstudio_utils.thermal_zone_vav_terminals(zone):
            openstudio_utils.air_terminal_set_minimum_airflow_fraction(variant, term, mdp_adj)

        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For: {air_loop.nameString()}: Zone {zone_res['name']} has a ventilation effectiveness of {round(zone_res['e_vz'], 2)}. Increasing to {round(zone_res['e_vz_adj'], 2)} by increasing minimum damper position from {round(zone_res['mdp'], 2)} to {round(mdp_adj, 2)}.")
        if zone_res['shortfall']:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For: {air_loop.nameString()}: Zone {zone_res['name']} is fully open and its ventilation effectiveness of {round(zone_res['e_vz_adj'], 2)} stays below {settings.MIN_ZONE_VENTILATION_EFFECTIVENESS}.")

    if result['num_zones_adj'] > 0:
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For: {air_loop.nameString()}: {result['num_zones_adj']} zones had minimum damper position increased to meet ventilation requirements. Original system ventilation effectiveness was {round(result['e_v'], 2)}. After adjustment, system ventilation effectiveness is {round(result['e_v_adj'], 2)}")

    return result
#===================================================================================================
# endregion: DAMPER POSITIONS
#===================================================================================================
#===================================================================================================
# region: FAN POWER
#===================================================================================================
def air_loop_fan_power_limitation_pressure_drop_adjustment_bhp(air_loop: osmod.AirLoopHVAC, template: str,
                                                               has_fully_ducted_return_and_or_exhaust_air_systems: bool = False) -> float:
    """
    Determine the fan power limitation pressure drop adjustment per Table 6.5.3.1.1B.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    has_fully_ducted_return_and_or_exhaust_air_systems : bool, optional
        True if the return and/or exhaust air systems are fully ducted, default False.

    Returns
    -------
    bhp : float
        pressure drop adjustment in brake horsepower, None if the design supply air flow rate is not available.
    """
    rule_tables.validate_template(template)
    dsn_flow_m3_per_s = air_loop_design_supply_air_flow_rate(air_loop)
    if dsn_flow_m3_per_s == None:
        return None
    dsn_flow_cfm = openstudio.convert(dsn_flow_m3_per_s, 'm^3/s', 'cfm').get()

    fan_pwr_adjustment_in_wc = 0.0
    if has_fully_ducted_return_and_or_exhaust_air_systems:
        adj_in_wc = rule_tables.pressure_drop_adjustment_in_wc('fully_ducted_return_and_or_exhaust_air_systems')
        fan_pwr_adjustment_in_wc += adj_in_wc
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"--Added {adj_in_wc} in wc for Fully ducted return and/or exhaust air systems")

    # assumes all supply air passes through all devices
    fan_pwr_adjustment_bhp = fan_pwr_adjustment_in_wc * dsn_flow_cfm / 4131
    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{air_loop.nameString()} - {fan_pwr_adjustment_bhp} bhp = Fan Power Limitation Pressure Drop Adjustment")
    return fan_pwr_adjustment_bhp

def air_loop_allowable_system_brake_horsepower(air_loop: osmod.AirLoopHVAC, template: str,
                                               has_fully_ducted_return_and_or_exhaust_air_systems: bool = False) -> float:
    """
    Determine the allowable fan system brake horsepower per Table 6.5.3.1.1A.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    has_fully_ducted_return_and_or_exhaust_air_systems : bool, optional
        passed on to the pressure drop adjustment, default False.

    Returns
    -------
    bhp : float
        allowable brake horsepower, None if the design flow or the supply fan is not available.
    """
    limitation = rule_tables.fan_power_limitation(template)
    dsn_flow_m3_per_s = air_loop_design_supply_air_flow_rate(air_loop)
    if dsn_flow_m3_per_s == None:
        return None
    dsn_flow_cfm = openstudio.convert(dsn_flow_m3_per_s, 'm^3/s', 'cfm').get()

    fan_pwr_adjustment_bhp = air_loop_fan_power_limitation_pressure_drop_adjustment_bhp(air_loop, template,
                                                                                        has_fully_ducted_return_and_or_exhaust_air_systems)
    num_zones_served = len(air_loop.thermalZones())

    fan_type, _ = air_loop_supply_fan(air_loop)
    if fan_type == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{air_loop.nameString()} - has no supply fan, cannot determine the allowable brake horsepower.")
        return None

    if fan_type == 'FanVariableVolume':
        fan_pwr_limit_type = 'variable volume'
    else:
        fan_pwr_limit_type = 'constant volume'

    if limitation['single_zone_vav_as_constant_volume'] and fan_pwr_limit_type == 'variable volume' and num_zones_served == 1:
        fan_pwr_limit_type = 'constant volume'
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{air_loop.nameString()} - Using the constant volume limitation because single-zone VAV system.")

    if fan_pwr_limit_type == 'constant volume':
        allowable_fan_bhp = dsn_flow_cfm * limitation['constant_volume_bhp_per_cfm'] + fan_pwr_adjustment_bhp
    else:
        allowable_fan_bhp = dsn_flow_cfm * limitation['variable_volume_bhp_per_cfm'] + fan_pwr_adjustment_bhp

    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{air_loop.nameString()} - {round(allowable_fan_bhp, 2)} bhp = Allowable brake horsepower.")
    return allowable_fan_bhp

def air_loop_supply_return_exhaust_relief_fans(air_loop: osmod.AirLoopHVAC) -> list[osmod.StraightComponent]:
    """
    Get all of the supply, return, exhaust, and relief fans on this system, including the fans inside unitary equipment.

    Returns
    -------
    fans : list[osmod.StraightComponent]
        the cast FanConstantVolume, FanVariableVolume and FanOnOff objects.
    """
    fans = []
    sup_and_oa_comps = list(air_loop.supplyComponents()) + list(air_loop.oaComponents())
    for comp in sup_and_oa_comps:
        _, fan = openstudio_utils.cast_model_object(comp, openstudio_utils.FAN_TYPES)
        if fan != None:
            fans.append(fan)
            continue

        unitary_type, unitary = openstudio_utils.cast_model_object(comp, UNITARY_TYPES)
        if unitary != None:
            sup_fan = unitary_supply_fan(unitary_type, unitary)
            if sup_fan != None:
                _, fan = openstudio_utils.cast_model_object(sup_fan, openstudio_utils.FAN_TYPES)
                if fan != None:
                    fans.append(fan)
    return fans

def air_loop_system_fan_brake_horsepower(air_loop: osmod.AirLoopHVAC, include_terminal_fans: bool = True) -> float:
    """
    Determine the total brake horsepower of the fans on the system with or without the fans inside of fan powered terminals.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    include_terminal_fans : bool, optional
        if True, power from fan powered terminals will be included, default True.

    Returns
    -------
    bhp : float
        total brake horsepower, fans whose flow rate is not available are left out with a warning.
    """
    fans = air_loop_supply_return_exhaust_relief_fans(air_loop)
    if include_terminal_fans:
        for _, term in air_loop_fan_powered_terminals(air_loop):
            _, term_fan = openstudio_utils.cast_model_object(term.fan(), ('FanConstantVolume',))
            if term_fan != None:
                fans.append(term_fan)

    sys_fan_bhp = 0.0
    for fan in fans:
        fan_bhp = osfans.fan_brake_horsepower(fan)
        if fan_bhp == None:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{air_loop.nameString()} - brake horsepower of {fan.nameString()} is not available and is left out of the system total.")
            continue
        sys_fan_bhp += fan_bhp
    return sys_fan_bhp

def air_loop_apply_baseline_fan_pressure_rise(air_loop: osmod.AirLoopHVAC, template: str,
                                              has_fully_ducted_return_and_or_exhaust_air_systems: bool = False) -> dict:
    """
    Set the fan pressure rises that will result in the system hitting the baseline allowable fan power.
    The allowable brake horsepower is split across the supply, return, exhaust and relief fans in proportion to their proposed brake horsepower.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    has_fully_ducted_return_and_or_exhaust_air_systems : bool, optional
        passed on to the pressure drop adjustment, default False.

    Returns
    -------
    result : dict
        - success : bool
        - proposed_bhp : float, system bhp of the proposed system including terminal fans
        - allowable_bhp : float, allowable bhp less the pressure drop adjustment
        - baseline_bhp : float, system bhp after the change excluding terminal fans
        - fans : list[dict], per fan name, proposed_bhp, target_bhp, bhp, pressure_rise_pa, impeller_efficiency, motor_efficiency
        - failures : list[dict], name and reason
    """
    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{air_loop.nameString()} - Setting {template} baseline fan power.")
    result = {'success': False, 'proposed_bhp': None, 'allowable_bhp': None, 'baseline_bhp': None, 'fans': [], 'failures': []}

    proposed_sys_bhp = air_loop_system_fan_brake_horsepower(air_loop, include_terminal_fans=True)
    result['proposed_bhp'] = proposed_sys_bhp

    allowable_fan_bhp = air_loop_allowable_system_brake_horsepower(air_loop, template, has_fully_ducted_return_and_or_exhaust_air_systems)
    if allowable_fan_bhp == None:
        result['failures'].append({'name': air_loop.nameString(), 'reason': 'allowable brake horsepower is not available'})
        return result

    fan_pwr_adjustment_bhp = air_loop_fan_power_limitation_pressure_drop_adjustment_bhp(air_loop, template,
                                                                                        has_fully_ducted_return_and_or_exhaust_air_systems)
    allowable_fan_bhp = allowable_fan_bhp - fan_pwr_adjustment_bhp
    result['allowable_bhp'] = allowable_fan_bhp

    fans = air_loop_supply_return_exhaust_relief_fans(air_loop)
    proposed_fan_bhps = []
    for fan in fans:
        proposed_fan_bhps.append(osfans.fan_brake_horsepower(fan))

    fans_bhp = sum([bhp for bhp in proposed_fan_bhps if bhp != None])
    if fans_bhp <= 0:
        result['failures'].append({'name': air_loop.nameString(), 'reason': 'the system has no fan with a known brake horsepower'})
        return result

    baseline_impeller_eff = osfans.fan_baseline_impeller_efficiency(template)
    for fan, proposed_fan_bhp in zip(fans, proposed_fan_bhps):
        fan_name = fan.nameString()
        if proposed_fan_bhp == None:
            result['failures'].append({'name': fan_name, 'reason': 'design air flow rate is not available'})
            continue

        dsn_flow_m3_per_s = osfans.fan_design_air_flow_rate(fan)
        if dsn_flow_m3_per_s <= 0:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{air_loop.nameString()} - design air flow rate of {fan_name} is {dsn_flow_m3_per_s}, cannot set its baseline pressure rise.")
            result['failures'].append({'name': fan_name, 'reason': f"design air flow rate is {dsn_flow_m3_per_s}"})
            continue

        baseline_fan_bhp = proposed_fan_bhp / fans_bhp * allowable_fan_bhp
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{fan_name} * {round(baseline_fan_bhp, 1)} bhp = Baseline fan brake horsepower.")

        osfans.fan_change_impeller_efficiency(fan, baseline_impeller_eff)
        baseline_motor_eff = osfans.fan_standard_minimum_motor_efficiency(template, baseline_fan_bhp)
        osfans.fan_change_motor_efficiency(fan, baseline_motor_eff)

        pressure_rise_pa = osfans.baseline_fan_pressure_rise(baseline_fan_bhp, fan.fanEfficiency(), fan.motorEfficiency(), dsn_flow_m3_per_s)
        fan.setPressureRise(pressure_rise_pa)
        pressure_rise_in_wc = openstudio.convert(pressure_rise_pa, 'Pa', 'inH_{2}O').get()
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{fan_name} * {round(pressure_rise_in_wc, 2)} in w.c. = Pressure drop to achieve allowable fan power.")

        calc_bhp = osfans.fan_brake_horsepower(fan)
        if baseline_fan_bhp > 0 and abs((calc_bhp - baseline_fan_bhp) / baseline_fan_bhp) > settings.FAN_BHP_TOLERANCE:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{fan_name} baseline fan bhp supposed to be {baseline_fan_bhp}, but is {calc_bhp}.")

        result['fans'].append({'name': fan_name, 'proposed_bhp': proposed_fan_bhp, 'target_bhp': baseline_fan_bhp, 'bhp': calc_bhp,
                               'pressure_rise_pa': pressure_rise_pa, 'impeller_efficiency': osfans.fan_impeller_efficiency(fan),
                               'motor_efficiency': fan.motorEfficiency()})

    calc_sys_bhp = air_loop_system_fan_brake_horsepower(air_loop, include_terminal_fans=False)
    result['baseline_bhp'] = calc_sys_bhp
    if allowable_fan_bhp > 0 and abs((calc_sys_bhp - allowable_fan_bhp) / allowable_fan_bhp) > settings.FAN_BHP_TOLERANCE:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{air_loop.nameString()} baseline system bhp supposed to be {allowable_fan_bhp}, but is {calc_sys_bhp}.")

    result['success'] = len(result['failures']) == 0
    return result
#===================================================================================================
# endregion: FAN POWER
#===================================================================================================
#===================================================================================================
# region: STANDARD CONTROLS
#===================================================================================================
def air_loop_apply_standard_controls(air_loop: osmod.AirLoopHVAC, template: str, climate_zone: str) -> dict:
    """
    Apply all standard required controls to the air loop.

    Parameters
    ----------
    air_loop : osmod.AirLoopHVAC
        the air loop.

    template : str
        code vintage.

    climate_zone : str
        climate zone.

    Returns
    -------
    result : dict
        - damper_positions : dict, result of air_loop_set_minimum_vav_damper_positions, None if not a multizone VAV system
        - economizer_limits : bool
        - economizer_integration : bool
        - multizone_vav_optimization : bool, None if not a multizone VAV system
        - demand_control_ventilation : bool
    """
    rule_tables.validate_template(template)
    rule_tables.validate_climate_zone(climate_zone)
    result = {'damper_positions': None, 'economizer_limits': False, 'economizer_integration': False,
              'multizone_vav_optimization': None, 'demand_control_ventilation': False}

    is_multizone_vav = air_loop_multizone_vav_system(air_loop)
    if is_multizone_vav:
        result['damper_positions'] = air_loop_set_minimum_vav_damper_positions(air_loop)

    result['economizer_limits'] = air_loop_apply_economizer_limits(air_loop, template, climate_zone)
    result['economizer_integration'] = air_loop_apply_economizer_integration(air_loop, template, climate_zone)

    if is_multizone_vav:
        if air_loop_multizone_vav_optimization_required(air_loop, template, climate_zone):
            air_loop_enable_multizone_vav_optimization(air_loop)
            result['multizone_vav_optimization'] = True
        else:
            air_loop_disable_multizone_vav_optimization(air_loop)
            result['multizone_vav_optimization'] = False

    if air_loop_demand_control_ventilation_required(air_loop, template, climate_zone):
        result['demand_control_ventilation'] = air_loop_enable_demand_control_ventilation(air_loop)

    return result
#===================================================================================================
# endregion: STANDARD CONTROLS
#===================================================================================================
