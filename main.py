# main.py
import logging
import sys

import click

from benchmark import SweepRunner
from config import DEFAULT_MAX_SETS, geometry_from_config, load_config, log_level
from errors import ConfigurationError, SimulationError
from replay import simulate
from tracefile import read_trace
from visualize import plot_access_breakdown, plot_sweep

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(cfg, override=None):
    logging.basicConfig(level=log_level(cfg, override), format="%(levelname)s: %(message)s")


def format_verbose(record, results):
    """Render one replayed record the way cache-lab traces are annotated, e.g. "M 20,1 miss hit"."""
    outcomes = []
    for result in results:
        outcomes.append("hit" if result.hit else "miss")
        if result.eviction:
            outcomes.append("eviction")
    return " ".join([record.text] + outcomes)


def _fail(exc):
    logger.debug("Run aborted", exc_info=exc)
    raise click.ClickException(str(exc)) from exc


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("-s", "set_bits", type=int,
              help=f"Number of set index bits (S = 2^s is the number of sets, at most {DEFAULT_MAX_SETS} "
                   "unless the config's cache.max_sets raises it)")
@click.option("-E", "lines_per_set", type=int, help="Associativity (number of lines per set)")
@click.option("-b", "offset_bits", type=int, help="Number of block bits (B = 2^b is the block size)")
@click.option("-t", "trace_path", type=str, help="Trace file to replay")
@click.option("-v", "verbose", is_flag=True, help="Print hit/miss/eviction for every trace record")
@click.option("--config", "config_path", type=str, default=None, help="JSON config file with a 'cache' section")
@click.option("--log-level", "log_level_name", type=str, default=None, help="Logging level (default WARNING)")
@click.option("--plot", "plot_path", type=str, default=None, help="Save a hit/miss/eviction chart to this file")
def csim(set_bits, lines_per_set, offset_bits, trace_path, verbose, config_path, log_level_name, plot_path):
    """Replay a memory trace against a set-associative LRU cache."""
    try:
        cfg = load_config(config_path) if config_path else {}
        setup_logging(cfg, log_level_name)
        geometry = geometry_from_config(cfg, set_bits, lines_per_set, offset_bits)
        if trace_path is None:
            raise ConfigurationError("missing required option: -t")
        logger.info("Simulating %s on %s", geometry.label(), trace_path)

        records = read_trace(trace_path)
        lines = []
        observer = None
        if verbose:
            def observer(record, results):
                if results:
                    lines.append(format_verbose(record, results))
        counters = simulate(geometry, records, observer=observer)
        if plot_path:
            plot_access_breakdown(counters, plot_path, title=geometry.label())
            logger.info("Plot saved to %s", plot_path)
    except (SimulationError, OSError) as exc:
        _fail(exc)

    for line in lines:
        click.echo(line)
    click.echo(counters.summary())
    return counters


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--config", "config_path", type=str, default="config.json", show_default=True,
              help="JSON config with 'benchmark', 'sweep' and 'output' sections")
@click.option("--plot/--no-plot", default=True, help="Save a hit-rate chart of the sweep")
@click.option("--log-level", "log_level_name", type=str, default=None, help="Logging level (default WARNING)")
def sweep(config_path, plot, log_level_name):
    """Replay one trace against several cache geometries and compare hit rates."""
    try:
        cfg = load_config(config_path)
        setup_logging(cfg, log_level_name)
        runner = SweepRunner(cfg)
        logger.info("Running sweep over %d geometries on %s", len(runner.geometries), runner.source)
        results = runner.run()
        out_cfg = cfg.get("output", {})
        results_path = runner.save_results(results, out_cfg)
        plot_path = plot_sweep(results, out_cfg.get("sweep_plot", "results/sweep_hit_rate.png")) if plot else None
    except (SimulationError, OSError) as exc:
        _fail(exc)

    for r in results:
        click.echo(
            f"s={r['set_bits']} E={r['lines_per_set']} b={r['offset_bits']} "
            f"hits:{r['hits']} misses:{r['misses']} evictions:{r['evictions']} "
            f"hit_rate:{r['hit_rate']:.4f}"
        )
    click.echo(f"Results saved to: {results_path}")
    if plot_path:
        click.echo(f"Plot saved to: {plot_path}")
    return results


def _main(command, argv, prog_name):
    """Invoke a click command, turning every failure into exit status 1."""
    try:
        command.main(args=argv, prog_name=prog_name, standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return 1
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return 0


def run(argv=None):
    return _main(csim, argv, "csim")


def run_sweep(argv=None):
    return _main(sweep, argv, "csim-sweep")


if __name__ == "__main__":
    sys.exit(run())
