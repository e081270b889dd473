import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from m3ufilter.filter import generate_filtered
from m3ufilter.groups import analyze

DEFAULT_GROUPS = ["News", "Sports", "Movies", "Kids", "Music", "Documentary"]


def synthetic_playlist(entries, groups=None, ungrouped_every=7):
    """Build a valid playlist with ``entries`` channels spread over ``groups``."""
    groups = groups or DEFAULT_GROUPS
    lines = ["#EXTM3U"]
    for i in range(entries):
        if ungrouped_every and i % ungrouped_every == 0:
            lines.append(f'#EXTINF:-1 tvg-id="ch{i}",Channel {i}')
        else:
            group = groups[i % len(groups)]
            lines.append(
                f'#EXTINF:-1 tvg-id="ch{i}" tvg-name="Channel {i}" group-title="{group}",Channel {i}'
            )
        lines.append(f"http://example.invalid/live/{i}.ts")
    return "\n".join(lines)


def benchmark_scan(entry_counts=None, excluded_groups=None):
    if entry_counts is None:
        entry_counts = [10_000, 50_000, 100_000, 250_000]
    excluded_groups = excluded_groups or DEFAULT_GROUPS[:2]
    results = []

    for count in entry_counts:
        text = synthetic_playlist(count)

        t0 = time.time()
        analysis = analyze(text)
        t1 = time.time()
        filtered = generate_filtered(text, excluded_groups)
        t2 = time.time()

        results.append((count, t1 - t0, t2 - t1))
        print(
            f"entries={count}: analyze {t1 - t0:.2f}s, "
            f"generate {t2 - t1:.2f}s (kept {filtered.kept_entries}/{analysis.total_entries})"
        )
    return results


def benchmark_concurrent(requests=8, entries=50_000, worker_values=None):
    """Time independent filter requests sharing one pool of threads."""
    if worker_values is None:
        worker_values = [1, 2, 4, 8]
    text = synthetic_playlist(entries)
    results = []

    for workers in worker_values:
        t0 = time.time()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(generate_filtered, text, DEFAULT_GROUPS[:1])
                for _ in range(requests)
            ]
            for future in as_completed(futures):
                future.result()
        elapsed = time.time() - t0
        results.append((workers, elapsed))
        print(f"max_workers={workers}: {elapsed:.2f}s")

    best = min(results, key=lambda x: x[1])
    print(f"\nRecommended MAX_WORKERS: {best[0]} (time: {best[1]:.2f}s)")
    return best[0]


if __name__ == "__main__":
    benchmark_scan()
    benchmark_concurrent()
