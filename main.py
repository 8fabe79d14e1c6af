# main.py
import argparse
import json
import logging
import sys
from benchmark import BenchmarkRunner, outcome_counts
from cache import SimulatorError
from replay import write_trace
from visualize import plot_hit_rate_sweep, plot_outcome_breakdown


def load_config(path="config.json"):
    with open(path, "r") as f:
        return json.load(f)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Synthetic-trace benchmark for the LRU cache simulator")
    ap.add_argument("config", nargs="?", default="config.json", help="JSON config file (default: config.json)")
    ap.add_argument("--no-plots", action="store_true", help="Skip writing PNG plots")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        cfg = load_config(args.config)
        runner = BenchmarkRunner(cfg)
    except (OSError, json.JSONDecodeError, SimulatorError, ValueError) as e:
        ap.error(f"bad config {args.config}: {e}")

    out_cfg = cfg.get("output", {})
    print("Starting benchmark with config:", cfg.get("benchmark", {}))
    summary, outcomes = runner.run()
    summary["sweep"] = runner.sweep()
    results_path = runner.save_results(summary, out_cfg)
    print("Benchmark Summary:", {k: v for k, v in summary.items() if k != "sweep"})
    print("Results saved to:", results_path)
    if out_cfg.get("trace_file"):
        print("Trace written to:", write_trace(runner.trace, out_cfg["trace_file"]))

    if not args.no_plots:
        outcome_plot = out_cfg.get("outcome_plot", "results/outcomes.png")
        sweep_plot = out_cfg.get("sweep_plot", "results/hit_rate_sweep.png")
        plot_outcome_breakdown(outcome_counts(outcomes), outcome_plot)
        plot_hit_rate_sweep(summary["sweep"], sweep_plot)
        print("Plots saved to:", outcome_plot, sweep_plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
