import openstudio
from openstudio import model as osmod

from osmod_std import settings
from osmod_std import rule_tables
from osmod_std import openstudio_utils

LOG_CHANNEL = 'openstudio.standards.Fan'

#===================================================================================================
# region: FAN PERFORMANCE
#===================================================================================================
def fan_design_air_flow_rate(fan: osmod.StraightComponent) -> float:
    """
    Design air flow rate of the fan, the hard sized maximum flow rate or else the autosized one.

    Parameters
    ----------
    fan : osmod.StraightComponent
        FanConstantVolume, FanVariableVolume or FanOnOff.

    Returns
    -------
    flow_rate : float
        flow rate in m^3/s, None if not available.
    """
    flow_rate, status = openstudio_utils.get_autosizable_value(fan, 'MaximumFlowRate')
    if flow_rate == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {fan.nameString()} the maximum flow rate is {status}.")
    return flow_rate

def fan_impeller_efficiency(fan: osmod.StraightComponent) -> float:
    # the fan efficiency field holds the total efficiency
    return fan.fanEfficiency() / fan.motorEfficiency()

def fan_brake_horsepower(fan: osmod.StraightComponent) -> float:
    """
    Brake horsepower of the fan, the shaft power delivered by the motor to the impeller.

    Parameters
    ----------
    fan : osmod.StraightComponent
        FanConstantVolume, FanVariableVolume or FanOnOff.

    Returns
    -------
    bhp : float
        brake horsepower, None if the flow rate of the fan is not available.
    """
    flow_rate = fan_design_air_flow_rate(fan)
    if flow_rate == None:
        return None
    impeller_eff = fan_impeller_efficiency(fan)
    bhp = fan.pressureRise() * flow_rate / impeller_eff / settings.WATTS_PER_HORSEPOWER
    return bhp

def baseline_fan_pressure_rise(target_bhp: float, fan_efficiency: float, motor_efficiency: float, flow_rate: float) -> float:
    """
    The pressure rise that makes a fan draw the target brake horsepower.

    Parameters
    ----------
    target_bhp : float
        brake horsepower to achieve.

    fan_efficiency : float
        total efficiency of the fan.

    motor_efficiency : float
        efficiency of the motor.

    flow_rate : float
        design flow rate in m^3/s.

    Returns
    -------
    pressure_rise : float
        pressure rise in Pa.
    """
    if flow_rate <= 0:
        raise ValueError(f"A fan with a design flow rate of {flow_rate} m3/s cannot reach {target_bhp} bhp")
    impeller_eff = fan_efficiency / motor_efficiency
    return target_bhp * settings.WATTS_PER_HORSEPOWER * impeller_eff / flow_rate

def fan_change_impeller_efficiency(fan: osmod.StraightComponent, impeller_efficiency: float) -> bool:
    """
    Change the impeller efficiency, keeping the motor efficiency.
    """
    total_eff = impeller_efficiency * fan.motorEfficiency()
    return fan.setFanEfficiency(total_eff)

def fan_change_motor_efficiency(fan: osmod.StraightComponent, motor_efficiency: float) -> bool:
    """
    Change the motor efficiency, keeping the impeller efficiency.
    """
    impeller_eff = fan_impeller_efficiency(fan)
    set_motor = fan.setMotorEfficiency(motor_efficiency)
    set_total = fan.setFanEfficiency(impeller_eff * motor_efficiency)
    return set_motor and set_total
#===================================================================================================
# endregion: FAN PERFORMANCE
#===================================================================================================
#===================================================================================================
# region: STANDARD EFFICIENCY
#===================================================================================================
def fan_baseline_impeller_efficiency(template: str) -> float:
    return rule_tables.fan_power_limitation(template)['baseline_impeller_efficiency']

def fan_standard_minimum_motor_efficiency(template: str, motor_bhp: float) -> float:
    """
    Minimum motor efficiency for the motor that drives the given brake horsepower, assuming a 4 pole open drip-proof motor.

    Parameters
    ----------
    template : str
        code vintage.

    motor_bhp : float
        brake horsepower the motor drives.

    Returns
    -------
    motor_eff : float
        the nominal full load efficiency.
    """
    motor_eff = rule_tables.motor_nominal_efficiency(template, motor_bhp)
    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template}: {round(motor_bhp, 2)} bhp motor, nominal efficiency = {round(motor_eff * 100, 1)}%")
    return motor_eff

def fan_variable_volume_apply_standard_efficiency(fan: osmod.FanVariableVolume, template: str) -> bool:
    """
    Sets the fan motor efficiency based on the standard. The fan is assumed to have a 65% impeller efficiency and a motor sized at 110% of its brake horsepower.

    Parameters
    ----------
    fan : osmod.FanVariableVolume
        the variable volume fan, it needs to be hard sized.

    template : str
        code vintage.

    Returns
    -------
    success : bool
        False if the fan is not hard sized.
    """
    max_flow_m3_per_s = openstudio_utils.get_optional_value(fan.maximumFlowRate())
    if max_flow_m3_per_s == None:
        openstudio.logFree(openstudio.Warn, LOG_CHANNEL, f"For {fan.nameString()} max flow rate is not hard sized, cannot apply efficiency standard.")
        return False

    max_flow_cfm = openstudio.convert(max_flow_m3_per_s, 'm^3/s', 'cfm').get()
    pressure_rise_in_h2o = openstudio.convert(fan.pressureRise(), 'Pa', 'inH_{2}O').get()

    fan_eff = settings.STANDARD_FAN_EFFICIENCY
    brake_hp = (pressure_rise_in_h2o * max_flow_cfm) / (fan_eff * 6356)
    allowed_hp = brake_hp * settings.MOTOR_SIZING_FACTOR

    motor_eff = rule_tables.motor_nominal_efficiency(template, allowed_hp)
    total_fan_eff = fan_eff * motor_eff

    fan.setFanEfficiency(total_fan_eff)
    fan.setMotorEfficiency(motor_eff)

    openstudio.logFree(openstudio.Info, LOG_CHANNEL, f"For {template}: {fan.nameString()}: allowed_hp = {round(allowed_hp, 2)}HP; motor eff = {round(motor_eff * 100, 1)}%; total fan eff = {round(total_fan_eff * 100, 1)}%")
    return True
#===================================================================================================
# endregion: STANDARD EFFICIENCY
#===================================================================================================
