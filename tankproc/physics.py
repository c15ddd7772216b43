
import math
import numpy as np

from .errors import InvalidArgumentError

G = 9.806  # m/s^2, value used throughout the basin analyses
KNOT_M_S = 0.5144

def grams_to_newton(grams, g: float = G):
    """Dynamometer output in grams-force to Newton."""
    return (np.asarray(grams, dtype=float) / 1000.0) * g

def shaft_power_w(torque_nm, rpm):
    """
    Shaft power P = 2π n Q with n in rev/s.
    Equivalent to the workbook form Q * RPM / 9549 * 1000.
    """
    return np.asarray(torque_nm, dtype=float) * np.asarray(rpm, dtype=float) * (2.0 * math.pi / 60.0)

def froude_number(speed_m_s, lwl_m: float, g: float = G):
    """Length Froude number Fr = V / sqrt(g L)."""
    if lwl_m <= 0:
        raise InvalidArgumentError("waterline length must be > 0 m")
    return np.asarray(speed_m_s, dtype=float) / math.sqrt(g * lwl_m)

def reynolds_number(speed_m_s, length_m: float, nu_m2_s: float):
    """Re = V L / ν"""
    if nu_m2_s <= 0:
        raise InvalidArgumentError("kinematic viscosity must be > 0")
    return np.asarray(speed_m_s, dtype=float) * length_m / nu_m2_s

def ittc57_friction(re):
    """ITTC 1957 model-ship correlation line: CF = 0.075 / (log10 Re - 2)^2"""
    re = np.asarray(re, dtype=float)
    return 0.075 / (np.log10(re) - 2.0) ** 2

def grigson_friction(re):
    """
    Grigson (1999) friction line, two polynomial branches in log10(log10 Re)
    split at Re = 1e7.
    """
    re = np.asarray(re, dtype=float)
    ll = np.log10(np.log10(re))
    low = 10.0 ** (2.98651 - 10.8843 * ll + 5.15283 * ll**2)
    high = 10.0 ** (-9.57459 + 26.6084 * ll - 30.8285 * ll**2 + 10.8914 * ll**3)
    return np.where(re < 1e7, low, high)

def total_resistance_coefficient(resistance_n, rho: float, area_m2: float, speed_m_s):
    """CT = R / (0.5 ρ S V^2)"""
    v = np.asarray(speed_m_s, dtype=float)
    if np.any(v <= 0):
        raise InvalidArgumentError("speed must be > 0 m/s")
    return np.asarray(resistance_n, dtype=float) / (0.5 * rho * area_m2 * v**2)

def full_scale_speed(speed_m_s, scale_ratio: float):
    """Froude scaling Vs = Vm sqrt(λ)."""
    return np.asarray(speed_m_s, dtype=float) * math.sqrt(scale_ratio)

def heave_mm(lvdt_fwd_mm, lvdt_aft_mm):
    """Model heave as the mean of the forward and aft post displacements."""
    return (np.asarray(lvdt_fwd_mm, dtype=float) + np.asarray(lvdt_aft_mm, dtype=float)) / 2.0

def trim_deg(lvdt_fwd_mm, lvdt_aft_mm, post_spacing_mm: float):
    """Running trim from the two carriage posts, positive when the forward post reads higher."""
    if post_spacing_mm <= 0:
        raise InvalidArgumentError("post spacing must be > 0 mm")
    d = np.asarray(lvdt_fwd_mm, dtype=float) - np.asarray(lvdt_aft_mm, dtype=float)
    return np.degrees(np.arctan(d / post_spacing_mm))

def stimulator_drag_n(froude, slope: float, intercept: float):
    """
    Turbulence-stimulator drag from a linear fit against Froude number.
    Negative values of the fit line mean no measurable stimulator drag.
    """
    return np.maximum(slope * np.asarray(froude, dtype=float) + intercept, 0.0)
