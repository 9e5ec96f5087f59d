import argparse
import json
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from movie_catalog.scanning.dircache import DirectoryCache
from movie_catalog.scanning.filesystem import DirectoryScanner


def run_once(roots: List[str], workers: int, dir_cache: DirectoryCache) -> dict:
    scanner = DirectoryScanner(dir_cache=dir_cache, max_workers=workers)
    t0 = time.perf_counter()
    found = 0

    def on_found(_video):
        nonlocal found
        found += 1

    stats = scanner.scan(roots, on_found)
    return {
        "seconds": time.perf_counter() - t0,
        "videos": found,
        "readdir_count": stats.readdir_count,
        "cache_hits": stats.cache_hits,
    }


def benchmark(roots: List[str], workers: Iterable[int], repeats: int, out_file: Path):
    worker_list = list(workers)
    results = []
    for w in worker_list:
        # Fresh cache per worker count: the first run is cold, the rest reuse listings
        dir_cache = DirectoryCache()
        runs = [run_once(roots, w, dir_cache) for _ in range(repeats)]
        cold = runs[0]["seconds"]
        warm_runs = [r["seconds"] for r in runs[1:]]
        warm_avg: Optional[float] = None
        if warm_runs:
            warm_avg = sum(warm_runs) / len(warm_runs)
            print(f"{w} workers: {cold:.2f}s (cold), avg warm over {len(warm_runs)} runs: {warm_avg:.2f}s "
                  f"({runs[-1]['cache_hits']} cache hits)")
        else:
            print(f"{w} workers: {cold:.2f}s (single run)")
        results.append(
            {
                "workers": w,
                "runs": runs,
                "cold": cold,
                "warm_avg": warm_avg,
            }
        )

    out_file.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "timestamp": datetime.now().isoformat(),
        "roots": roots,
        "repeats": repeats,
        "workers": worker_list,
        "results": results,
    }
    out_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote results to {out_file}")


def parse_args():
    p = argparse.ArgumentParser(description="Benchmark library scans (cold vs. cached) with different worker counts.")
    p.add_argument("roots", nargs="+", help="Library roots to scan")
    p.add_argument("--workers", type=int, nargs="+", default=[1, 4, 10, 20], help="Worker counts to test")
    p.add_argument("--repeats", type=int, default=3, help="Runs per worker; first is treated as cold")
    p.add_argument("--output", type=Path, default=Path("bench_scan_results.json"), help="Path to write JSON results")
    return p.parse_args()


def main():
    args = parse_args()
    benchmark(args.roots, args.workers, args.repeats, args.output)


if __name__ == "__main__":
    main()
