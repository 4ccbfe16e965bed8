"""
Zone ventilation effectiveness per the ventilation rate procedure (ASHRAE 62.1 Appendix A) as applied to 90.1 baseline
multizone VAV systems. Minimum damper positions are raised, never lowered, until every zone reaches the minimum zone
ventilation effectiveness or its terminal is fully open.

All flow rates share one unit; the model adapters pass m^3/s.
"""
from osmod_std import settings

def zone_ventilation_effectiveness(x_s: float, v_oz: float, v_pz: float, mdp: float) -> float:
    """
    Zone ventilation effectiveness Evz = 1 + Xs - Zd.

    Parameters
    ----------
    x_s : float
        average outdoor air fraction of the system.

    v_oz : float
        zone outdoor airflow.

    v_pz : float
        zone primary design airflow.

    mdp : float
        minimum damper position, fraction of v_pz.

    Returns
    -------
    e_vz : float
        zone ventilation effectiveness.
    """
    v_dz = v_pz * mdp
    if v_dz <= 0:
        raise ZeroDivisionError(f"zone minimum discharge airflow is {v_dz}, zone discharge air fraction is undefined")
    z_d = v_oz / v_dz
    return 1 + x_s - z_d

def adjusted_minimum_damper_position(x_s: float, v_oz: float, v_pz: float,
                                     min_e_vz: float = settings.MIN_ZONE_VENTILATION_EFFECTIVENESS) -> float:
    """
    Smallest minimum damper position that gives the zone a ventilation effectiveness of min_e_vz, capped at 1.0.
    """
    z_d_adj = 1 + x_s - min_e_vz
    v_dz_adj = v_oz / z_d_adj
    mdp_adj = v_dz_adj / v_pz
    if mdp_adj > 1.0:
        mdp_adj = 1.0
    return mdp_adj

def adjust_minimum_damper_positions(v_ps: float, zones: list[dict],
                                    min_e_vz: float = settings.MIN_ZONE_VENTILATION_EFFECTIVENESS,
                                    e_z: float = settings.ZONE_AIR_DISTRIBUTION_EFFECTIVENESS) -> dict:
    """
    Compute the zone ventilation effectiveness of every zone on a system and the minimum damper positions needed to keep each zone at or above min_e_vz.
    Nothing is written here, the caller applies mdp_adj for the zones flagged as adjusted.

    Parameters
    ----------
    v_ps : float
        system primary (design supply) airflow, None if it could not be resolved.

    zones : list[dict]
        one dictionary per zone with
        - name : str
        - v_bz : float, breathing zone outdoor airflow, None if not resolved
        - v_pz : float, zone primary design airflow, None if not resolved
        - mdp : float, current minimum damper position, None if not resolved
        - reason : str, optional, why a value could not be resolved

    min_e_vz : float, optional
        minimum zone ventilation effectiveness, default 0.6.

    e_z : float, optional
        zone air distribution effectiveness, default 1.0.

    Returns
    -------
    result : dict
        - success : bool, False if any zone or the system could not be evaluated, or an outdoor air intake is undefined
        - x_s : float, average outdoor air fraction
        - v_ou : float, uncorrected outdoor air intake
        - e_v, e_v_adj : float, system ventilation effectiveness before and after adjustment
        - v_ot, v_ot_adj : float, outdoor air intake before and after adjustment
        - num_zones_adj : int
        - zones : list[dict], per zone name, v_oz, v_pz, mdp, e_vz, mdp_adj, e_vz_adj, adjusted, shortfall
        - failures : list[dict], per zone or system name and reason
    """
    result = {'success': True, 'x_s': None, 'v_ou': None, 'e_v': None, 'e_v_adj': None, 'v_ot': None,
              'v_ot_adj': None, 'num_zones_adj': 0, 'zones': [], 'failures': []}

    # Total uncorrected outdoor airflow rate
    v_ou = 0.0
    for zone in zones:
        if zone['v_bz'] == None:
            reason = zone.get('reason') or 'outdoor airflow rate is not available'
            result['failures'].append({'name': zone['name'], 'reason': reason})
        else:
            v_ou += zone['v_bz']

    if v_ps == None or v_ps <= 0:
        result['failures'].append({'name': 'system', 'reason': f"design supply air flow rate is {v_ps}"})

    # without every breathing zone flow and the system flow the outdoor air fraction is unknown
    if len(result['failures']) != 0:
        result['success'] = False
        return result

    x_s = v_ou / v_ps
    result['x_s'] = x_s
    result['v_ou'] = v_ou

    e_vzs = []
    e_vzs_adj = []
    for zone in zones:
        name = zone['name']
        v_oz = zone['v_bz'] / e_z
        v_pz = zone['v_pz']
        mdp = zone['mdp']
        if v_pz == None or mdp == None:
            missing = 'primary design airflow' if v_pz == None else 'minimum damper position'
            reason = zone.get('reason') or f"{missing} is not available"
            result['failures'].append({'name': name, 'reason': reason})
            continue

        try:
            e_vz = zone_ventilation_effectiveness(x_s, v_oz, v_pz, mdp)
        except ZeroDivisionError as err:
            result['failures'].append({'name': name, 'reason': f"{err} (v_pz = {v_pz}, mdp = {mdp})"})
            continue

        e_vzs.append(e_vz)
        zone_res = {'name': name, 'v_oz': v_oz, 'v_pz': v_pz, 'mdp': mdp, 'e_vz': e_vz, 'mdp_adj': mdp,
                    'e_vz_adj': e_vz, 'adjusted': False, 'shortfall': False}

        if e_vz < min_e_vz - settings.VENTILATION_EFFECTIVENESS_TOLERANCE:
            mdp_adj = adjusted_minimum_damper_position(x_s, v_oz, v_pz, min_e_vz=min_e_vz)
            # monotonic, the damper only ever opens further
            mdp_adj = max(mdp_adj, mdp)
            e_vz_adj = zone_ventilation_effectiveness(x_s, v_oz, v_pz, mdp_adj)
            zone_res['mdp_adj'] = mdp_adj
            zone_res['e_vz_adj'] = e_vz_adj
            zone_res['adjusted'] = True
            zone_res['shortfall'] = e_vz_adj < min_e_vz - settings.VENTILATION_EFFECTIVENESS_TOLERANCE
            result['num_zones_adj'] += 1

        e_vzs_adj.append(zone_res['e_vz_adj'])
        result['zones'].append(zone_res)

    if len(e_vzs) != 0:
        e_v = min(e_vzs)
        e_v_adj = min(e_vzs_adj)
        result['e_v'] = e_v
        result['e_v_adj'] = e_v_adj
        if e_v > 0:
            result['v_ot'] = v_ou / e_v
        else:
            result['failures'].append({'name': 'system', 'reason': f"system ventilation effectiveness is {e_v}, outdoor air intake is undefined"})
        if e_v_adj > 0:
            result['v_ot_adj'] = v_ou / e_v_adj
        else:
            result['failures'].append({'name': 'system', 'reason': f"adjusted system ventilation effectiveness is {e_v_adj}, adjusted outdoor air intake is undefined"})

    if len(result['failures']) != 0:
        result['success'] = False

    return result
