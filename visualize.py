# visualize.py
import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402


def _ensure_dir(outpath):
    directory = os.path.dirname(outpath)
    if directory:
        os.makedirs(directory, exist_ok=True)


def plot_access_breakdown(counters, outpath, title="Cache Hit/Miss/Eviction Counts"):
    _ensure_dir(outpath)
    plt.figure(figsize=(5, 4))
    labels = ["Hits", "Misses", "Evictions"]
    values = [counters.hits, counters.misses, counters.evictions]
    bars = plt.bar(labels, values, color=["tab:green", "tab:red", "tab:orange"])
    for bar, value in zip(bars, values):
        plt.annotate(str(value), (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                     ha="center", va="bottom")
    plt.title(f"{title} (hit rate {counters.hit_rate:.1%})")
    plt.ylabel("Count")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_sweep(results, outpath):
    """Bar chart of hit rate per cache geometry, one bar per sweep result."""
    _ensure_dir(outpath)
    labels = [f"s={r['set_bits']}\nE={r['lines_per_set']}\nb={r['offset_bits']}" for r in results]
    rates = [r["hit_rate"] * 100.0 for r in results]
    plt.figure(figsize=(max(4, 1.2 * len(results)), 4))
    plt.bar(range(len(results)), rates)
    plt.xticks(range(len(results)), labels)
    plt.ylim(0, 100)
    plt.title("Hit Rate by Cache Geometry")
    plt.ylabel("Hit rate (%)")
    plt.grid(True, axis="y")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
