# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_parent(outpath):
    parent = os.path.dirname(outpath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_outcome_breakdown(counts, outpath, title="Cache Access Outcomes"):
    """Pie of hits vs. misses that filled a free line vs. misses that evicted."""
    _ensure_parent(outpath)
    labels = ["Hit", "Miss", "Miss + eviction"]
    sizes = [counts.get("hit", 0), counts.get("miss", 0), counts.get("miss_eviction", 0)]
    plt.figure(figsize=(5, 4))
    if sum(sizes) > 0:
        plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    else:
        plt.text(0.5, 0.5, "no accesses", ha="center", va="center")
        plt.axis("off")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hit_rate_sweep(results, outpath):
    """Hit rate and eviction count against associativity (one point per sweep run)."""
    _ensure_parent(outpath)
    assoc = [r["E"] for r in results]
    hit_rates = [r["hit_rate"] for r in results]
    evictions = [r["evictions"] for r in results]

    fig, ax1 = plt.subplots(figsize=(8, 4))
    ax1.plot(assoc, hit_rates, marker='o', color="tab:blue")
    ax1.set_xlabel("Associativity (E)")
    ax1.set_ylabel("Hit rate", color="tab:blue")
    ax1.set_ylim(0, 1)
    ax1.grid(True)
    ax2 = ax1.twinx()
    ax2.bar(assoc, evictions, alpha=0.3, color="tab:red", width=0.4)
    ax2.set_ylabel("Evictions", color="tab:red")
    if results:
        r = results[0]
        ax1.set_title(f"LRU sweep (s={r['s']}, b={r['b']}, pattern={r['access_pattern']})")
    fig.tight_layout()
    fig.savefig(outpath)
    plt.close(fig)
