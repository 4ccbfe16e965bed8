import openstudio
from openstudio import model as osmod

from osmod_std import rule_tables
from osmod_std import openstudio_utils

LOG_CHANNEL = 'openstudio.standards.Coil'

ELECTRIC_HEATING_COILS = ('CoilHeatingElectric',)

OTHER_HEATING_COILS = ('CoilHeatingGas', 'CoilHeatingWater', 'CoilHeatingDXSingleSpeed', 'CoilHeatingGasMultiStage',
                       'CoilHeatingDesuperheater', 'CoilHeatingWaterToAirHeatPumpEquationFit')

# unitary AC table key and coil setter of each two speed performance curve
TWO_SPEED_CURVE_SETTERS = (('cool_cap_ft', 'setTotalCoolingCapacityFunctionOfTemperatureCurve'),
                           ('cool_cap_fflow', 'setTotalCoolingCapacityFunctionOfFlowFractionCurve'),
                           ('cool_eir_ft', 'setEnergyInputRatioFunctionOfTemperatureCurve'),
                           ('cool_eir_fflow', 'setEnergyInputRatioFunctionOfFlowFractionCurve'),
                           ('cool_plf_fplr', 'setPartLoadFractionCorrelationCurve'),
                           ('cool_cap_ft', 'setLowSpeedTotalCoolingCapacityFunctionOfTemperatureCurve'),
                           ('cool_eir_ft', 'setLowSpeedEnergyInputRatioFunctionOfTemperatureCurve'))


def eer_to_cop(eer: float) -> float:
    """
    Convert EER to COP, the fan power is taken out assuming it is 12% of the input power.

    Parameters
    ----------
    eer : float
        energy efficiency ratio.

    Returns
    -------
    cop : float
        coefficient of performance.
    """
    # r is the fan power as a fraction of the input power
    r = 0.12
    cop = (eer / 3.413 + r) / (1 - r)
    return cop

def seer_to_cop(seer: float) -> float:
    """
    Convert SEER to COP through the EER, per the PNNL prototype building conversion.
    """
    eer = -0.0182 * seer * seer + 1.1088 * seer
    return eer_to_cop(eer)

def coil_heating_type(coil: osmod.CoilCoolingDXTwoSpeed) -> str:
    """
    Determine the heating type of the equipment the coil serves, for the unitary AC efficiency lookup.

    Parameters
    ----------
    coil : osmod.CoilCoolingDXTwoSpeed
        the cooling coil.

    Returns
    -------
    heating_type : str
        'Electric Resistance or None' or 'All Other', None if it cannot be determined.
    """
    heating_type = None
    air_loop = coil.airLoopHVAC()
    if air_loop.is_initialized():
        heating_type = 'Electric Resistance or None'
        for comp in air_loop.get().supplyComponents():
            elec_type, _ = openstudio_utils.cast_model_object(comp, ELECTRIC_HEATING_COILS)
            if elec_type != None:
                break
            other_type, _ = openstudio_utils.cast_model_object(comp, OTHER_HEATING_COILS)
            if other_type != None:
                heating_type = 'All Other'
                break
        return heating_type

    containing_comp = coil.containingHVACComponent()
    if containing_comp.is_initialized():
        if containing_comp.get().to_AirLoopHVACUnitaryHeatPumpAirToAir().is_initialized():
            heating_type = 'Electric Resistance or None'
        return heating_type

    containing_zone_comp = coil.containingZoneHVACComponent()
    if containing_zone_comp.is_initialized():
        ptac = containing_zone_comp.get().to_ZoneHVACPackagedTerminalAirConditioner()
        if ptac.is_initialized():
            htg_coil = ptac.get().heatingCoil()
            if htg_coil.to_CoilHeatingElectric().is_initialized():
                heating_type = 'Electric Resistance or None'
            elif htg_coil.to_CoilHeatingWater().is_initialized() or htg_coil.to_CoilHeatingGas().is_initialized():
                heating_type = 'All Other'
    return heating_type

def coil_cooling_dx_two_speed_apply_standard_efficiency(coil: osmod.CoilCoolingDXTwoSpeed, template: str) -> bool:
    """
    Set the high and low speed COP of a two speed DX coil to the minimum efficiency of a single package unitary AC of its capacity.
    The performance curves of the matching unit are attached to the coil, a missing curve is skipped with a warning.

    Parameters
    ----------
    coil : osmod.CoilCoolingDXTwoSpeed
        the cooling coil, it needs a hard sized high speed capacity.

    template : str
        code vintage.

    Returns
    -------
    success : bool
        False if the capacity is not hard sized or the standard has no matching unit.
    """
    cooling_type = coil.condenserType()
    search_criteria = {'cooling_type': cooling_type, 'subcategory': 'Single Package'}
    heating_type = coil_heating_type(coil)
    if heating_type != None:
        search_criteria['heating_type'] = heating_type

    capacity_w = openstudio_utils.get_optional_value(coil.ratedHighSpeedTotalCoolingCapacity())
    if capacity_w == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {coil.nameString()} capacity is not hard sized, cannot apply efficiency standard.")
        return False

    capacity_btu_per_hr = openstudio.convert(capacity_w, 'W', 'Btu/hr').get()
    capacity_kbtu_per_hr = openstudio.convert(capacity_w, 'W', 'kBtu/hr').get()

    ac_props = rule_tables.unitary_ac_properties(template, search_criteria, capacity_btu_per_hr)
    if ac_props == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {template}: {coil.nameString()}: no unitary AC matches {search_criteria} at {round(capacity_kbtu_per_hr)}kBtu/hr.")
        return False

    for key, setter in TWO_SPEED_CURVE_SETTERS:
        curve = None
        if ac_props[key] != None:
            curve = openstudio_utils.add_curve(coil.model(), ac_props[key])
        if curve == None:
            openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {coil.nameString()}, cannot find {key} curve, will not be set.")
            continue
        getattr(coil, setter)(curve)

    msg_prefix = f"For {template}: {coil.nameString()}: {cooling_type} {heating_type} Single Package Capacity = {round(capacity_kbtu_per_hr)}kBtu/hr"
    min_seer = ac_props['minimum_seasonal_energy_efficiency_ratio']
    min_eer = ac_props['minimum_energy_efficiency_ratio']
    if min_seer != None:
        cop = seer_to_cop(min_seer)
        coil.setName(f"{coil.nameString()} {round(capacity_kbtu_per_hr)}kBtu/hr {min_seer}SEER")
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix}; SEER = {min_seer}")
    elif min_eer != None:
        cop = eer_to_cop(min_eer)
        coil.setName(f"{coil.nameString()} {round(capacity_kbtu_per_hr)}kBtu/hr {min_eer}EER")
        openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"{msg_prefix}; EER = {min_eer}")
    else:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"{msg_prefix}; the standard gives no minimum efficiency.")
        return False

    coil.setRatedHighSpeedCOP(cop)
    coil.setRatedLowSpeedCOP(cop)
    return True
