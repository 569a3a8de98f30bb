import argparse

from typing import Optional, Sequence

from arc_propagator.propagation.interpolation import INTERPOLATORS


def parse_command_line_arguments(
  argv : Optional[Sequence[str]] = None,
) -> argparse.Namespace:
  """
  Parse command-line arguments for the multi-arc propagator.

  Input:
  ------
    argv : sequence of str, optional
      Arguments to parse. Reads sys.argv if None.

  Output:
  -------
    args : argparse.Namespace
      Parsed command-line arguments.
  """
  parser = argparse.ArgumentParser(
    description     = 'Multi-arc state propagator',
    formatter_class = argparse.RawDescriptionHelpFormatter,
  )

  parser.add_argument(
    '--scenario',
    dest    = 'scenario',
    type    = str,
    default = None,
    help    = "Scenario .yaml filename in data/scenarios, or a path (default: earth_moon_multi_arc.yaml).",
  )
  parser.add_argument(
    '--output-folderpath',
    dest    = 'output_folderpath',
    type    = str,
    default = None,
    help    = "Root folder for run outputs (default: <project>/output).",
  )
  parser.add_argument(
    '--interpolator',
    dest    = 'interpolator',
    type    = str.lower,
    choices = list(INTERPOLATORS.keys()),
    default = None,
    help    = "Trajectory interpolator (default: from scenario, else lagrange).",
  )
  parser.add_argument(
    '--parallel',
    dest    = 'parallel',
    action  = 'store_true',
    default = False,
    help    = "Integrate arcs concurrently (disabled by default).",
  )
  parser.add_argument(
    '--plot',
    dest    = 'plot',
    action  = 'store_true',
    default = False,
    help    = "Generate and save plots (disabled by default).",
  )
  parser.add_argument(
    '--no-log',
    dest    = 'enable_log',
    action  = 'store_false',
    default = True,
    help    = "Do not copy terminal output to a log file.",
  )

  # Parse arguments
  args = parser.parse_args(argv)

  return args
