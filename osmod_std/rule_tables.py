import json
import itertools
from pathlib import Path
from functools import lru_cache

import numpy as np
import openstudio
from jsonschema import validate as json_validate

from osmod_std import settings

# the keys each table must resolve exactly once, checked when the file is loaded
EXHAUSTIVE_TABLES = {'economizer_requirements': ('templates', 'climate_zones'),
                     'economizer_limits': ('templates', 'climate_zones', 'economizer_type'),
                     'prohibited_economizer_types': ('templates', 'climate_zones'),
                     'integrated_economizers': ('templates',),
                     'energy_recovery_ventilators': ('templates', 'climate_zones'),
                     'demand_control_ventilation': ('templates',),
                     'multizone_vav_optimization': ('templates',),
                     'fan_power_limitations': ('templates',)}

# range tables only need every template to appear at least once
COVERED_TABLES = ('motors',)

#===================================================================================================
# region: LOADING
#===================================================================================================
def validate_template(template: str) -> str:
    if template not in settings.TEMPLATES:
        raise ValueError(f"Unknown template '{template}', valid choices are {', '.join(settings.TEMPLATES)}")
    return template

def validate_climate_zone(climate_zone: str) -> str:
    if climate_zone not in settings.CLIMATE_ZONES:
        raise ValueError(f"Unknown climate zone '{climate_zone}', valid choices are {', '.join(settings.CLIMATE_ZONES)}")
    return climate_zone

def check_table_exhaustive(table_name: str, entries: list[dict], keys: tuple[str]):
    """
    Check that every combination of the keys is resolved by exactly one entry of the table.

    Parameters
    ----------
    table_name : str
        name of the table, used in the error message.

    entries : list[dict]
        the entries of the table.

    keys : tuple[str]
        the entry keys spanning the table, 'templates', 'climate_zones' and/or 'economizer_type'.
    """
    counts = {}
    for entry in entries:
        axes = []
        for key in keys:
            values = entry[key]
            if key == 'climate_zones':
                for cz in values:
                    validate_climate_zone(cz)
            if isinstance(values, str):
                values = [values]
            axes.append(values)
        for combo in itertools.product(*axes):
            counts[combo] = counts.get(combo, 0) + 1

    expected_axes = []
    for key in keys:
        if key == 'templates':
            expected_axes.append(settings.TEMPLATES)
        elif key == 'climate_zones':
            expected_axes.append(settings.CLIMATE_ZONES)
        else:
            expected_axes.append(sorted(set(entry[key] for entry in entries)))

    missing = []
    for combo in itertools.product(*expected_axes):
        if combo not in counts:
            missing.append(combo)

    duplicated = [combo for combo, count in counts.items() if count > 1]
    if len(missing) != 0:
        raise ValueError(f"Table '{table_name}' has no entry for {missing}")
    if len(duplicated) != 0:
        raise ValueError(f"Table '{table_name}' has more than one entry for {duplicated}")

def check_table_covered(table_name: str, entries: list[dict]):
    covered = set()
    for entry in entries:
        covered.update(entry['templates'])
    missing = [template for template in settings.TEMPLATES if template not in covered]
    if len(missing) != 0:
        raise ValueError(f"Table '{table_name}' has no entry for {missing}")

def check_energy_recovery_bins(entries: list[dict]):
    for entry in entries:
        bins = entry['pct_oa_bins']
        if len(entry['minimum_flow_cfm']) != len(bins) + 1:
            raise ValueError(f"ERV entry for {entry['templates']} {entry['climate_zones']} needs {len(bins) + 1} flow values for {len(bins)} bins")
        if list(bins) != sorted(bins):
            raise ValueError(f"ERV entry for {entry['templates']} {entry['climate_zones']} has bins out of order")

@lru_cache(maxsize=None)
def load_rule_table(json_path: str | Path) -> dict:
    """
    Load a rule table json file, validate it against the ashrae_90_1 schema and check that it is exhaustive.

    Parameters
    ----------
    json_path : str | Path
        path to the json file.

    Returns
    -------
    data : dict
        the tables in the file, keyed by table name.
    """
    with open(json_path) as json_f:
        data = json.load(json_f)

    with open(settings.ASHRAE_SCHEMA_PATH) as schema_f:
        json_schema = json.load(schema_f)

    json_validate(instance=data, schema=json_schema)

    for table_name, entries in data.items():
        if table_name in EXHAUSTIVE_TABLES:
            check_table_exhaustive(table_name, entries, EXHAUSTIVE_TABLES[table_name])
        elif table_name in COVERED_TABLES:
            check_table_covered(table_name, entries)

        if table_name == 'energy_recovery_ventilators':
            check_energy_recovery_bins(entries)

    return data

def find_entry(json_path: str | Path, table_name: str, template: str, climate_zone: str = None, economizer_type: str = None) -> dict:
    """
    find the single entry of an exhaustive table for a template and, where the table is keyed by them, a climate zone and economizer type.

    Parameters
    ----------
    json_path : str | Path
        path to the json file holding the table.

    table_name : str
        name of the table in the file.

    template : str
        code vintage.

    climate_zone : str, optional
        climate zone.

    economizer_type : str, optional
        economizer control type.

    Returns
    -------
    found_entry : dict
        the matching entry, None only when the table is not keyed by economizer type for that type.
    """
    validate_template(template)
    if climate_zone != None:
        validate_climate_zone(climate_zone)

    entries = load_rule_table(json_path)[table_name]
    found_entry = None
    for entry in entries:
        if template not in entry['templates']:
            continue
        if climate_zone != None and climate_zone not in entry['climate_zones']:
            continue
        if economizer_type != None and entry['economizer_type'] != economizer_type:
            continue
        found_entry = entry
        break
    return found_entry

def find_object(objects: list[dict], search_criteria: dict, capacity: float = None) -> dict:
    """
    find the first object matching all the search criteria and, if given, whose capacity range contains the capacity.

    Parameters
    ----------
    objects : list[dict]
        the objects to search.

    search_criteria : dict
        key value pairs the object must match. A 'template' criterion matches against the object's templates.

    capacity : float, optional
        the capacity to match against the minimum_capacity and maximum_capacity of the object. The range is half open,
        minimum_capacity <= capacity < maximum_capacity, so adjacent rows share their bound.

    Returns
    -------
    found_obj : dict
        the found object, None if nothing matches.
    """
    found_obj = None
    for obj in objects:
        matched = True
        for key, value in search_criteria.items():
            if key == 'template':
                if value not in obj['templates']:
                    matched = False
                    break
            elif obj.get(key) != value:
                matched = False
                break
        if not matched:
            continue
        if capacity != None:
            if capacity < obj['minimum_capacity'] or capacity >= obj['maximum_capacity']:
                continue
        found_obj = obj
        break
    return found_obj
#===================================================================================================
# endregion: LOADING
#===================================================================================================
#===================================================================================================
# region: ECONOMIZERS
#===================================================================================================
def economizer_minimum_capacity_btu_per_hr(template: str, climate_zone: str) -> float:
    """
    The minimum cooling capacity above which an economizer is required.

    Returns
    -------
    minimum_capacity : float
        capacity in Btu/hr, None if economizers are not required.
    """
    entry = find_entry(settings.ECONOMIZERS_PATH, 'economizer_requirements', template, climate_zone=climate_zone)
    return entry['minimum_capacity_btu_per_hr']

def economizer_limits(template: str, climate_zone: str, economizer_type: str) -> dict:
    """
    The high limit shutoff settings of an economizer type.

    Returns
    -------
    limits : dict
        - drybulb_limit_f
        - enthalpy_limit_btu_per_lb
        - dewpoint_limit_f
        each None when the standard sets no limit, all None for economizer types without fixed limits.
    """
    if economizer_type not in settings.ECONOMIZER_TYPES:
        raise ValueError(f"Unknown economizer type '{economizer_type}'")

    entry = find_entry(settings.ECONOMIZERS_PATH, 'economizer_limits', template, climate_zone=climate_zone,
                       economizer_type=economizer_type)
    limits = {'drybulb_limit_f': None, 'enthalpy_limit_btu_per_lb': None, 'dewpoint_limit_f': None}
    if entry != None:
        for key in limits.keys():
            limits[key] = entry[key]
    return limits

def prohibited_economizer_types(template: str, climate_zone: str) -> list[str]:
    entry = find_entry(settings.ECONOMIZERS_PATH, 'prohibited_economizer_types', template, climate_zone=climate_zone)
    return list(entry['prohibited_types'])

def integrated_economizer_required(template: str, climate_zone: str, is_vav: bool, num_zones_served: int,
                                   total_cooling_capacity_w: float) -> tuple[bool, str]:
    """
    Determine if the economizer must be integrated per 6.5.1.3.

    Parameters
    ----------
    template : str
        code vintage.

    climate_zone : str
        climate zone.

    is_vav : bool
        True if the supply fan or the zone terminals are variable volume.

    num_zones_served : int
        number of zones served by the system.

    total_cooling_capacity_w : float
        total cooling capacity of the system in W.

    Returns
    -------
    result : tuple[bool, str]
        True if an integrated economizer is required, and the exception that applies if not.
    """
    validate_climate_zone(climate_zone)
    rule = find_entry(settings.ECONOMIZERS_PATH, 'integrated_economizers', template)
    if rule['dx_vav_exception'] and is_vav == True and num_zones_served > 1:
        return False, 'exception a, DX VAV system'

    min_cap_btu_per_hr = rule['minimum_capacity_btu_per_hr']
    if min_cap_btu_per_hr != None:
        min_cap_w = openstudio.convert(min_cap_btu_per_hr, 'Btu/hr', 'W').get()
        if total_cooling_capacity_w < min_cap_w:
            return False, f"exception b, DX system less than {min_cap_btu_per_hr}Btu/hr"

    if climate_zone in rule['non_integrated_climate_zones']:
        return False, f"exception c, climate zone {climate_zone}"

    return True, None
#===================================================================================================
# endregion: ECONOMIZERS
#===================================================================================================
#===================================================================================================
# region: VENTILATION
#===================================================================================================
def erv_minimum_flow_cfm(template: str, climate_zone: str, pct_oa: float) -> float:
    """
    The design supply flow above which an energy recovery ventilator is required, per Table 6.5.6.1.

    Parameters
    ----------
    template : str
        code vintage.

    climate_zone : str
        climate zone.

    pct_oa : float
        fraction of outdoor air at design flow.

    Returns
    -------
    minimum_flow : float
        flow in cfm, None when an ERV is not required at this outdoor air fraction.
    """
    entry = find_entry(settings.ERV_PATH, 'energy_recovery_ventilators', template, climate_zone=climate_zone)
    bins = entry['pct_oa_bins']
    if len(bins) == 0:
        return entry['minimum_flow_cfm'][0]
    idx = int(np.digitize(pct_oa, bins))
    return entry['minimum_flow_cfm'][idx]

def dcv_limits(template: str) -> dict:
    """
    Area, occupant density and outdoor air limits for demand control ventilation.

    Returns
    -------
    limits : dict
        - required, False if DCV is never required for the template
        - minimum_area_ft2
        - minimum_occupants_per_1000_ft2
        - minimum_oa_without_economizer_cfm
        - minimum_oa_with_economizer_cfm
    """
    entry = find_entry(settings.VENTILATION_PATH, 'demand_control_ventilation', template)
    limits = dict(entry)
    limits.pop('templates')
    return limits

def multizone_vav_optimization_rule(template: str) -> dict:
    entry = find_entry(settings.VENTILATION_PATH, 'multizone_vav_optimization', template)
    return {'applicable': entry['applicable'], 'maximum_oa_fraction': entry['maximum_oa_fraction']}
#===================================================================================================
# endregion: VENTILATION
#===================================================================================================
#===================================================================================================
# region: FANS AND COILS
#===================================================================================================
def fan_power_limitation(template: str) -> dict:
    entry = find_entry(settings.FAN_POWER_PATH, 'fan_power_limitations', template)
    limitation = dict(entry)
    limitation.pop('templates')
    return limitation

def pressure_drop_adjustment_in_wc(name: str) -> float:
    adjustments = load_rule_table(settings.FAN_POWER_PATH)['pressure_drop_adjustments']
    found_obj = find_object(adjustments, {'name': name})
    if found_obj == None:
        raise ValueError(f"Unknown pressure drop adjustment '{name}'")
    return found_obj['pressure_drop_in_wc']

def motor_nominal_efficiency(template: str, motor_hp: float, number_of_poles: float = 4.0, motor_type: str = 'Open Drip-Proof') -> float:
    """
    Nominal full load efficiency of the motor that meets the size criteria.

    Parameters
    ----------
    template : str
        code vintage.

    motor_hp : float
        motor size in horsepower.

    number_of_poles : float, optional
        number of poles, default 4.

    motor_type : str, optional
        motor enclosure type, default 'Open Drip-Proof'.

    Returns
    -------
    efficiency : float
        nominal full load efficiency.
    """
    validate_template(template)
    motors = load_rule_table(settings.MOTORS_PATH)['motors']
    search_criteria = {'template': template, 'number_of_poles': number_of_poles, 'type': motor_type}
    # fractional bhp still needs the smallest motor
    motor_hp = max(motor_hp, 0.0)
    motor_props = find_object(motors, search_criteria, motor_hp)
    if motor_props == None:
        raise ValueError(f"No {number_of_poles}-pole {motor_type} motor of {motor_hp} hp for {template}")
    return motor_props['nominal_full_load_efficiency']

def unitary_ac_properties(template: str, search_criteria: dict, capacity_btu_per_hr: float) -> dict:
    validate_template(template)
    unitary_acs = load_rule_table(settings.UNITARY_ACS_PATH)['unitary_acs']
    criteria = dict(search_criteria)
    criteria['template'] = template
    return find_object(unitary_acs, criteria, capacity_btu_per_hr)

def find_obj_frm_json_based_on_type_name(json_path: str | Path, objtype: str, name: str) -> dict:
    """
    find an object based on object name of a json file.

    Parameters
    ----------
    json_path : str | Path
        the path to the json file to search for.

    objtype : str
        the obj type e.g. 'curves'.

    name : str
        the name of the object to find.

    Returns
    -------
    found_obj : dict
        the found object, None if there is no object with that name.
    """
    found_obj = None
    obj_datas = load_rule_table(json_path)[objtype]
    for obj_data in obj_datas:
        if obj_data['name'] == name:
            found_obj = obj_data
            break
    return found_obj
#===================================================================================================
# endregion: FANS AND COILS
#===================================================================================================
