"""
Scenario Configuration
======================

Build a multi-arc run from a YAML scenario file.

Scenario layout:
----------------
  name                : str
  global_frame_origin : str (default 'SSB')
  bodies              : {name: {gravitational_parameter, mass, inertia_tensor, ..., ephemeris}}
    ephemeris         : {type: constant, state} | {type: kepler, state, epoch, gp} | {type: tabulated, times, states}
  arcs                : {start_time, end_time, arc_duration, arc_overlap} or {intervals: [[t0, t1], ...]}
  propagation         : {bodies_to_propagate, central_bodies, accelerations, torques, rotational_bodies}
  initial_states      : [[...], ...] one combined state per arc
    or initial_state  : {epoch, state, gp}  analytic two-body state at each arc start
  integrator          : {method, step_size, rtol, atol, max_step, output_step, per_arc}
  interpolator        : 'lagrange' | 'cubic' | 'linear'

The engine is unit-agnostic; a scenario only needs consistent units.
"""
import yaml
import numpy as np

from pathlib  import Path
from datetime import datetime
from types    import SimpleNamespace
from typing   import Optional

from arc_propagator.model.acceleration_settings import (
  ACCELERATION_SETTINGS_CLASSES,
  TORQUE_SETTINGS_CLASSES,
  acceleration_type_from_name,
  torque_type_from_name,
)
from arc_propagator.model.body                  import Body, SystemOfBodies
from arc_propagator.model.ephemeris             import ConstantEphemeris, KeplerEphemeris, TabulatedEphemeris
from arc_propagator.model.two_body              import propagate_kepler_orbit
from arc_propagator.propagation.arc             import Arc, build_overlapping_arcs
from arc_propagator.propagation.integrators     import IntegratorSettings
from arc_propagator.propagation.interpolation   import create_interpolator
from arc_propagator.propagation.multi_arc       import PropagatorSettings


PROJECT_ROOT         = Path(__file__).parent.parent.parent
SCENARIOS_FOLDERPATH = PROJECT_ROOT / 'data' / 'scenarios'
DEFAULT_SCENARIO     = 'earth_moon_multi_arc.yaml'

BODY_PROPERTY_KEYS = (
  'gravitational_parameter',
  'mass',
  'inertia_tensor',
  'inertia_tensor_time_derivative',
  'rotation_rate',
  'reference_radius',
  'surface_density',
  'scale_height',
  'radiation_pressure_1_au',
)


def resolve_scenario_filepath(
  scenario : Optional[str],
) -> Path:
  """
  Scenario path from a filename in data/scenarios or a path to a file.
  """
  if scenario is None:
    scenario = DEFAULT_SCENARIO
  scenario_filepath = Path(scenario)
  if not scenario_filepath.exists():
    scenario_filepath = SCENARIOS_FOLDERPATH / scenario
  if not scenario_filepath.exists():
    raise FileNotFoundError(f"Scenario file not found: {scenario}")
  return scenario_filepath


def load_scenario(
  scenario_filepath : Path,
) -> dict:
  with open(scenario_filepath, 'r') as f:
    scenario = yaml.safe_load(f)
  if not isinstance(scenario, dict):
    raise ValueError(f"Scenario file {scenario_filepath} does not contain a mapping")
  for key in ('bodies', 'arcs', 'propagation', 'integrator'):
    if key not in scenario:
      raise ValueError(f"Scenario file {scenario_filepath} is missing '{key}'")
  return scenario


def _build_ephemeris(
  ephemeris_data : Optional[dict],
):
  if ephemeris_data is None:
    return None
  ephemeris_type = str(ephemeris_data.get('type', 'constant')).lower()
  if ephemeris_type == 'constant':
    return ConstantEphemeris(np.array(ephemeris_data['state'], dtype=float))
  elif ephemeris_type == 'kepler':
    return KeplerEphemeris(
      initial_state = np.array(ephemeris_data['state'], dtype=float),
      epoch         = float(ephemeris_data.get('epoch', 0.0)),
      gp            = float(ephemeris_data['gp']),
    )
  elif ephemeris_type == 'tabulated':
    return TabulatedEphemeris(
      times  = np.array(ephemeris_data['times'],  dtype=float),
      states = np.array(ephemeris_data['states'], dtype=float).T,
    )
  raise ValueError(f"Unknown ephemeris type '{ephemeris_type}'. Options: ['constant', 'kepler', 'tabulated']")


def _as_inertia_tensor(
  value : Optional[list],
) -> Optional[np.ndarray]:
  # A 3-vector is the diagonal of a principal-axes tensor
  if value is None:
    return None
  value = np.array(value, dtype=float)
  if value.shape == (3,):
    return np.diag(value)
  return value


def build_bodies(
  bodies_data         : dict,
  global_frame_origin : str = 'SSB',
) -> SystemOfBodies:
  bodies = SystemOfBodies(global_frame_origin)
  for body_name, body_data in bodies_data.items():
    body_data = dict(body_data or {})
    unknown   = set(body_data) - set(BODY_PROPERTY_KEYS) - {'ephemeris', 'state'}
    if unknown:
      raise ValueError(f"Unknown properties for body '{body_name}': {sorted(unknown)}")

    properties = {key: body_data[key] for key in BODY_PROPERTY_KEYS if key in body_data}
    for key in ('inertia_tensor', 'inertia_tensor_time_derivative'):
      if key in properties:
        properties[key] = _as_inertia_tensor(properties[key])

    body = Body(body_name, ephemeris=_build_ephemeris(body_data.get('ephemeris')), **properties)
    if 'state' in body_data:
      body.set_state(None, np.array(body_data['state'], dtype=float))
    bodies.add_body(body)
  return bodies


def build_arcs(
  arcs_data : dict,
) -> list:
  if 'intervals' in arcs_data:
    return [Arc(float(start_time), float(end_time)) for start_time, end_time in arcs_data['intervals']]
  return build_overlapping_arcs(
    start_time   = float(arcs_data['start_time']),
    end_time     = float(arcs_data['end_time']),
    arc_duration = float(arcs_data['arc_duration']),
    arc_overlap  = float(arcs_data.get('arc_overlap', 0.0)),
  )


def _build_settings_map(
  settings_data    : Optional[dict],
  type_from_name   : object,
  settings_classes : object,
) -> dict:
  """
  {undergoing: {exerting: [{type: name, **parameters}, ...]}} to settings objects.
  """
  settings_map = {}
  for undergoing_name, exerting_data in (settings_data or {}).items():
    settings_map[undergoing_name] = {}
    for exerting_name, entries in exerting_data.items():
      settings_list = []
      for entry in entries:
        entry          = dict(entry)
        settings_class = settings_classes[type_from_name(entry.pop('type'))]
        try:
          settings_list.append(settings_class(**entry))
        except TypeError as error:
          raise ValueError(f"Invalid parameters for {settings_class.__name__}: {error}") from error
      settings_map[undergoing_name][exerting_name] = settings_list
  return settings_map


def build_propagator_settings(
  propagation_data : dict,
) -> PropagatorSettings:
  return PropagatorSettings(
    bodies_to_propagate   = propagation_data['bodies_to_propagate'],
    central_bodies        = propagation_data['central_bodies'],
    acceleration_settings = _build_settings_map(
      propagation_data.get('accelerations'), acceleration_type_from_name, ACCELERATION_SETTINGS_CLASSES,
    ),
    torque_settings       = _build_settings_map(
      propagation_data.get('torques'), torque_type_from_name, TORQUE_SETTINGS_CLASSES,
    ) or None,
    rotational_bodies     = propagation_data.get('rotational_bodies', ()),
  )


def build_integrator_settings(
  integrator_data : dict,
  arcs            : list,
):
  """
  One shared IntegratorSettings, or one per arc (anchored at each arc start)
  when 'per_arc' is set.
  """
  integrator_data = dict(integrator_data)
  per_arc         = bool(integrator_data.pop('per_arc', False))

  # YAML reads exponents without a sign (1e-10) as strings
  for key in ('step_size', 'initial_time', 'rtol', 'atol', 'max_step', 'output_step'):
    if integrator_data.get(key) is not None:
      integrator_data[key] = float(integrator_data[key])

  settings = IntegratorSettings(**integrator_data)
  if per_arc:
    return [settings.anchored_at(arc.start_time) for arc in arcs]
  return settings


def build_initial_states(
  scenario : dict,
  arcs     : list,
) -> list:
  if 'initial_states' in scenario:
    return [np.array(state, dtype=float) for state in scenario['initial_states']]

  if 'initial_state' in scenario:
    # Two-body state at each arc start from one reference state
    initial_state_data = scenario['initial_state']
    state_o            = np.array(initial_state_data['state'], dtype=float)
    epoch              = float(initial_state_data.get('epoch', 0.0))
    gp                 = float(initial_state_data['gp'])
    return [propagate_kepler_orbit(state_o, arc.start_time - epoch, gp) for arc in arcs]

  raise ValueError("Scenario requires 'initial_states' or 'initial_state'")


def setup_paths(
  scenario_name     : str,
  output_folderpath : Optional[Path] = None,
) -> dict:
  """
  Set up a timestamped output folder with figures/ and files/ subfolders.
  """
  if output_folderpath is None:
    output_folderpath = PROJECT_ROOT / 'output'
  output_folderpath    = Path(output_folderpath)
  timestamp_str        = datetime.now().strftime("%Y%m%d_%H%M%S")
  timestamp_folderpath = output_folderpath / f"{timestamp_str}_{scenario_name}"
  figures_folderpath   = timestamp_folderpath / 'figures'
  files_folderpath     = timestamp_folderpath / 'files'
  log_filepath         = files_folderpath / 'output.log'

  figures_folderpath.mkdir(parents=True, exist_ok=True)
  files_folderpath.mkdir(parents=True, exist_ok=True)

  return {
    'output_folderpath'    : output_folderpath,
    'timestamp_folderpath' : timestamp_folderpath,
    'figures_folderpath'   : figures_folderpath,
    'files_folderpath'     : files_folderpath,
    'log_filepath'         : log_filepath,
  }


def build_config(
  scenario          : Optional[str]  = None,
  output_folderpath : Optional[Path] = None,
  interpolator      : Optional[str]  = None,
  parallel          : bool           = False,
  plot              : bool           = False,
  enable_log        : bool           = True,
) -> SimpleNamespace:
  """
  Build the run configuration from a scenario file and command-line options.

  Input:
  ------
    scenario : str | None
      Scenario filename in data/scenarios, or a path. Default scenario if None.
    output_folderpath : Path | None
      Root of the output folders. <project>/output if None.
    interpolator : str | None
      Overrides the scenario interpolator.
    parallel : bool
      Integrate arcs concurrently.
    plot : bool
      Generate and save plots.
    enable_log : bool
      Copy terminal output to a log file.

  Output:
  -------
    config : SimpleNamespace
      Bodies, arcs, initial states, settings, and paths of the run.
  """
  scenario_filepath = resolve_scenario_filepath(scenario)
  scenario_data     = load_scenario(scenario_filepath)
  scenario_name     = str(scenario_data.get('name', scenario_filepath.stem))

  bodies              = build_bodies(scenario_data['bodies'], scenario_data.get('global_frame_origin', 'SSB'))
  arcs                = build_arcs(scenario_data['arcs'])
  initial_states      = build_initial_states(scenario_data, arcs)
  integrator_settings = build_integrator_settings(scenario_data['integrator'], arcs)
  propagator_settings = build_propagator_settings(scenario_data['propagation'])

  interpolator_name = interpolator or scenario_data.get('interpolator', 'lagrange')
  paths             = setup_paths(scenario_name, output_folderpath)

  return SimpleNamespace(
    scenario_name       = scenario_name,
    scenario_filepath   = scenario_filepath,
    bodies              = bodies,
    arcs                = arcs,
    initial_states      = initial_states,
    integrator_settings = integrator_settings,
    propagator_settings = propagator_settings,
    interpolator_name   = interpolator_name,
    interpolator        = create_interpolator(interpolator_name),
    parallel            = parallel,
    plot                = plot,
    enable_log          = enable_log,
    **paths,
  )


def print_configuration(
  config : SimpleNamespace,
) -> None:
  """
  Print the input configuration table and the output paths.
  """
  entries = [
    ('scenario',      config.scenario_name,     None),
    ('scenario_file', config.scenario_filepath, None),
    ('num_bodies',    len(config.bodies),       None),
    ('num_arcs',      len(config.arcs),         None),
    ('interpolator',  config.interpolator_name, 'lagrange'),
    ('parallel',      config.parallel,          False),
    ('plot',          config.plot,              False),
    ('log',           config.enable_log,        True),
  ]

  headers = ['Argument', 'Value', 'Default']
  rows    = [[name, str(value), str(default)] for name, value, default in entries]

  # Column widths: longest entry plus spacing
  min_spacing = 4
  col_widths  = [
    max(len(headers[col_idx]), *(len(row[col_idx]) for row in rows)) + min_spacing
    for col_idx in range(len(headers))
  ]

  print("\nInput Configuration")
  print("  " + "".join(header.ljust(col_widths[i]) for i, header in enumerate(headers)))
  print("  " + "".join(("-" * (col_widths[i] - min_spacing)).ljust(col_widths[i]) for i in range(len(headers))))
  for row in rows:
    print("  " + "".join(row[col_idx].ljust(col_widths[col_idx]) for col_idx in range(len(row))))

  print("\nPaths and Files Setup")
  print(f"  Output Folderpath      : {config.output_folderpath}")
  print(f"    Timestamp Folderpath : <output_folderpath>/{config.timestamp_folderpath.relative_to(config.output_folderpath)}")
  print(f"    Figures Folderpath   : <output_folderpath>/{config.figures_folderpath.relative_to(config.output_folderpath)}")
  print(f"    Log Filepath         : <output_folderpath>/{config.log_filepath.relative_to(config.output_folderpath)}")
