from __future__ import annotations

import numpy as np

from oscnet.errors import InvalidParameter, ShapeMismatch
from oscnet.model import NetworkModel, build_network
from oscnet.settings import has_key, req_list


def _series_equivalent_stiffness(k_list_n_per_m: list[float]) -> float:
    """
    Springs in series:
      1/k_eq = sum(1/k_i).
    """
    if not k_list_n_per_m:
        raise InvalidParameter('k_list_n_per_m must be non-empty.')
    inv = 0.0
    for k in k_list_n_per_m:
        kk = float(k)
        if kk <= 0.0:
            raise InvalidParameter('All stiffness values must be > 0 for series equivalent.')
        inv += 1.0 / kk
    return 1.0 / inv


def _series_equivalent_damping(c_list_ns_per_m: list[float]) -> float:
    """
    Dashpots in series:
      1/c_eq = sum(1/c_i).

    A Kelvin-Voigt stack in series is not exactly one Kelvin-Voigt element at
    all frequencies; the dashpot reduction is the usual 1D approximation.
    """
    if not c_list_ns_per_m:
        raise InvalidParameter('c_list_ns_per_m must be non-empty.')
    inv = 0.0
    for c in c_list_ns_per_m:
        cc = float(c)
        if cc <= 0.0:
            raise InvalidParameter('All damping values must be > 0 for series equivalent.')
        inv += 1.0 / cc
    return 1.0 / inv


def _element_values(values: list, reduce) -> np.ndarray:
    # A list entry is a stack of elements in series.
    out = np.zeros(len(values), dtype=float)
    for i, v in enumerate(values):
        out[i] = reduce(v) if isinstance(v, (list, tuple)) else float(v)
    return out


def chain_matrices(k_elem, c_elem) -> tuple[np.ndarray, np.ndarray]:
    """
    Connection-layout (damping, stiffness) for a 1D chain:

      [ground] -- e0 -- node 0 -- e1 -- node 1 -- ... -- node N-1

    Element 0 links node 0 to ground, element e links nodes e-1 and e.
    """
    k = _element_values(list(k_elem), _series_equivalent_stiffness)
    c = _element_values(list(c_elem), _series_equivalent_damping)
    if k.size != c.size:
        raise ShapeMismatch(f'k_elem and c_elem must have the same length, got {k.size} and {c.size}.')
    n = k.size

    K = np.zeros((n, n), dtype=float)
    C = np.zeros((n, n), dtype=float)
    K[0, 0] = k[0]
    C[0, 0] = c[0]
    for e in range(1, n):
        i = e - 1
        j = e
        K[i, j] = K[j, i] = k[e]
        C[i, j] = C[j, i] = c[e]
    return C, K


def chain_rest_lengths(rest_elem) -> np.ndarray:
    """Element rest lengths -> rest-length matrix (ground height on the diagonal)."""
    r = np.asarray(rest_elem, dtype=float)
    n = r.size
    L = np.zeros((n, n), dtype=float)
    if n == 0:
        return L
    L[0, 0] = r[0]
    for e in range(1, n):
        L[e - 1, e] = L[e, e - 1] = r[e]
    return L


def build_chain_network(
    masses,
    k_elem,
    c_elem,
    *,
    rest_elem=None,
    external_force=None,
) -> NetworkModel:
    C, K = chain_matrices(k_elem, c_elem)
    m = np.asarray(masses, dtype=float)
    if m.shape != (K.shape[0],):
        raise ShapeMismatch(f'Chain has {K.shape[0]} elements but {m.size} masses.')
    L = None if rest_elem is None else chain_rest_lengths(rest_elem)
    if L is not None and L.shape != K.shape:
        raise ShapeMismatch(f'rest_elem must have {K.shape[0]} entries.')
    return build_network(m, C, K, rest_lengths=L, external_force=external_force)


def build_network_from_config(config: dict) -> NetworkModel:
    """
    Network from either explicit matrices (network.masses/damping/stiffness)
    or a chain description (network.chain.masses/k_elem/c_elem).
    """
    net = config['network']
    external_force = net.get('external_force', None)

    if has_key(config, ['network', 'chain']):
        return build_chain_network(
            req_list(config, ['network', 'chain', 'masses']),
            req_list(config, ['network', 'chain', 'k_elem']),
            req_list(config, ['network', 'chain', 'c_elem']),
            rest_elem=net['chain'].get('rest_elem', None),
            external_force=external_force,
        )

    return build_network(
        req_list(config, ['network', 'masses']),
        req_list(config, ['network', 'damping']),
        req_list(config, ['network', 'stiffness']),
        rest_lengths=net.get('rest_lengths', None),
        external_force=external_force,
    )


def initial_state_from_config(model: NetworkModel, config: dict) -> np.ndarray:
    positions = req_list(config, ['initial_state', 'positions'])
    velocities = config['initial_state'].get('velocities', None)
    return model.initial_state(positions, velocities)
