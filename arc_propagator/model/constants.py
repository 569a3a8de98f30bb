"""
Reference Constants
===================

SI reference values for the environment models that are tied to SI units
(drag and radiation pressure), and for scenarios expressed in meters.
"""


class CONVERTER:
  M_PER_AU = 149597870700.0    # [meters] per [astronomical unit]


class PHYSICALCONSTANTS:
  speed_of_light = 299792458.0  # [m/s]


class SOLARSYSTEMCONSTANTS:
  """
  Values for the bodies of the built-in scenarios, in SI units.
  """

  class SUN:
    GP                = 1.32712440018e20                          # [m³/s²]
    SOLAR_FLUX_1_AU   = 1361.0                                    # [W/m²]
    PRESSURE_SRP_1_AU = SOLAR_FLUX_1_AU / PHYSICALCONSTANTS.speed_of_light  # [N/m²]

  class EARTH:
    class RADIUS:
      EQUATOR = 6378137.0       # WGS84 [m]

    GP    = 3.986004418e14      # [m³/s²]
    RHO_0 = 1.225               # exponential atmosphere, sea level density [kg/m³]
    H_0   = 8500.0              # exponential atmosphere, scale height [m]
