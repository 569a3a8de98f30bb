"""
Multi-Arc State Propagator

Description:
  This script propagates the translational (and optionally rotational) state of
  one or more bodies over a sequence of possibly overlapping time arcs. Each arc
  is integrated independently from its own initial state; the per-arc histories
  are assembled into one continuous, interpolable trajectory per body.

  The scenario file (data/scenarios/*.yaml) defines:
  - Bodies and their properties (gravitational parameter, mass, inertia tensor, ephemeris)
  - Arcs (explicit intervals, or a span split into overlapping arcs)
  - Accelerations and torques acting on every propagated body
  - Initial states and numerical integration settings

  The script performs the following steps:
  1. Builds the bodies, arcs, and settings from the scenario.
  2. Propagates every arc and registers it into the body trajectories.
  3. Prints a summary of the final states.
  4. Generates and saves plots (optional).

Usage:

  Argument                     Required   Description
  ---------------------------  --------   --------------------------------------------------
  --scenario                   No         Scenario filename in data/scenarios, or a path
  --output-folderpath          No         Root folder for run outputs
  --interpolator               No         Trajectory interpolator (lagrange, cubic, linear)
  --parallel                   No         Integrate arcs concurrently
  --plot                       No         Generate and save plots
  --no-log                     No         Do not copy terminal output to a log file

  Example Commands:
    python -m arc_propagator.main \
      [--scenario earth_moon_multi_arc.yaml] \
      [--interpolator lagrange] \
      [--parallel] \
      [--plot]
"""
import sys

from pathlib import Path
from typing  import Optional

from arc_propagator.input.cli             import parse_command_line_arguments
from arc_propagator.input.configuration   import build_config, print_configuration
from arc_propagator.propagation.multi_arc import run_multi_arc_propagation
from arc_propagator.utility.logger        import start_logging, stop_logging
from arc_propagator.utility.printer       import print_results_summary


def main(
  scenario          : Optional[str]  = None,
  output_folderpath : Optional[Path] = None,
  interpolator      : Optional[str]  = None,
  parallel          : bool           = False,
  plot              : bool           = False,
  enable_log        : bool           = True,
) -> dict:
  """
  Main function to run a multi-arc propagation.

  This function builds the configuration from a scenario file, runs the
  multi-arc propagation, prints the results, and generates plots.

  Input:
  ------
    scenario : str | None
      Scenario filename in data/scenarios, or a path. Default scenario if None.
    output_folderpath : Path | None
      Root folder for run outputs.
    interpolator : str | None
      Trajectory interpolator. Scenario value if None.
    parallel : bool
      Flag to integrate arcs concurrently.
    plot : bool
      Flag to generate and save plots.
    enable_log : bool
      Flag to copy terminal output to a log file.

  Output:
  -------
    result : dict
      Dictionary containing the results of the multi-arc propagation.
  """

  # Process inputs and setup
  config = build_config(
    scenario          = scenario,
    output_folderpath = output_folderpath,
    interpolator      = interpolator,
    parallel          = parallel,
    plot              = plot,
    enable_log        = enable_log,
  )

  # Start logging to file
  logger = start_logging(config.log_filepath) if config.enable_log else None

  try:
    # Print input configuration and paths
    print_configuration(config)

    # Run multi-arc propagation
    result = run_multi_arc_propagation(
      bodies              = config.bodies,
      arcs                = config.arcs,
      initial_states      = config.initial_states,
      integrator_settings = config.integrator_settings,
      propagator_settings = config.propagator_settings,
      interpolator        = config.interpolator,
      parallel            = config.parallel,
    )

    # Display results
    print_results_summary(result)

    # Generate plots
    if config.plot:
      from arc_propagator.plot.trajectory import generate_plots
      generate_plots(
        result             = result,
        figures_folderpath = config.figures_folderpath,
      )
  finally:
    # Stop logging
    stop_logging(logger)

  return result


def cli(
  argv : Optional[list] = None,
) -> int:
  """
  Command-line entry point. Returns the process exit code.
  """
  # Parse command-line arguments
  args = parse_command_line_arguments(argv)

  # Run main function
  result = main(
    scenario          = args.scenario,
    output_folderpath = args.output_folderpath,
    interpolator      = args.interpolator,
    parallel          = args.parallel,
    plot              = args.plot,
    enable_log        = args.enable_log,
  )

  return 0 if result['success'] else 1


if __name__ == "__main__":
  sys.exit(cli())
