from pathlib import Path

DATA_DIR = Path(__file__).parent.joinpath('data')
ASHRAE_DATA_DIR = DATA_DIR.joinpath('json', 'ashrae90_1')
ASHRAE_SCHEMA_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.schema.json')
ECONOMIZERS_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.economizers.json')
ERV_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.energy_recovery.json')
VENTILATION_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.ventilation.json')
FAN_POWER_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.fan_power.json')
MOTORS_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.motors.json')
UNITARY_ACS_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.unitary_acs.json')
CURVES_PATH = ASHRAE_DATA_DIR.joinpath('ashrae_90_1.curves.json')
MEASURES_DIR = Path(__file__).parent.joinpath('measures')

TEMPLATES = ('DOE Ref Pre-1980', 'DOE Ref 1980-2004', '90.1-2004', '90.1-2007', '90.1-2010', '90.1-2013')

CLIMATE_ZONE_PREFIX = 'ASHRAE 169-2006-'
CLIMATE_ZONES = tuple(CLIMATE_ZONE_PREFIX + cz for cz in ('1A', '1B', '2A', '2B', '3A', '3B', '3C', '4A', '4B', '4C',
                                                         '5A', '5B', '5C', '6A', '6B', '7A', '7B', '8A', '8B'))

ECONOMIZER_TYPES = ('NoEconomizer', 'FixedDryBulb', 'FixedEnthalpy', 'DifferentialDryBulb', 'DifferentialEnthalpy',
                    'FixedDewPointAndDryBulb', 'ElectronicEnthalpy', 'DifferentialDryBulbAndEnthalpy')

# ventilation rate procedure, 62.1 appendix A
MIN_ZONE_VENTILATION_EFFECTIVENESS = 0.6
ZONE_AIR_DISTRIBUTION_EFFECTIVENESS = 1.0
VENTILATION_EFFECTIVENESS_TOLERANCE = 1e-6

# fan power
WATTS_PER_HORSEPOWER = 746.0
FAN_BHP_TOLERANCE = 0.02
STANDARD_FAN_EFFICIENCY = 0.65
MOTOR_SIZING_FACTOR = 1.1
