"""
Benchmark the bag-of-words scorers on random sparse vectors.

Compares:
- every scorer on the same vector pairs (time per pair)
- L2Scoring sequential vs thread-parallel reduction (time and agreement)

Usage:
    uv run python benchmark_scoring.py
    uv run python benchmark_scoring.py --vocabulary-size 1000000 --nonzeros 20000 --num-pairs 50
"""

import argparse
import time

import numpy as np
from tqdm import tqdm

from bow_scoring.bow_vector import BowVector, LNorm
from bow_scoring.scoring import GeneralScoring, L2Scoring, ScoringType, make_scoring


def random_vector(rng: np.random.Generator, vocabulary_size: int, nonzeros: int) -> BowVector:
    """L1-normalized vector with ``nonzeros`` distinct random words."""
    word_ids = rng.choice(vocabulary_size, size=min(nonzeros, vocabulary_size), replace=False)
    weights = rng.random(len(word_ids))
    vector = BowVector(zip(np.sort(word_ids).tolist(), weights.tolist()))
    vector.normalize(LNorm.L1)
    return vector


def benchmark_scoring(
    scoring: GeneralScoring,
    pairs: list[tuple[BowVector, BowVector]],
    num_runs: int = 3,
) -> tuple[float, float, list[float]]:
    """
    Time ``scoring`` over all pairs.

    Returns:
        (mean_time, std_time, scores)
    """
    times = []
    scores: list[float] = []

    for _ in range(num_runs):
        start = time.perf_counter()
        scores = [scoring.score(v1, v2) for v1, v2 in pairs]
        times.append(time.perf_counter() - start)

    return float(np.mean(times)), float(np.std(times)), scores


def main():
    parser = argparse.ArgumentParser(description="Benchmark bag-of-words scorers")
    parser.add_argument(
        "--vocabulary-size",
        type=int,
        default=100_000,
        help="Number of distinct words (default: 100000)",
    )
    parser.add_argument(
        "--nonzeros",
        type=int,
        default=5_000,
        help="Non-zero entries per vector (default: 5000)",
    )
    parser.add_argument(
        "--num-pairs",
        type=int,
        default=20,
        help="Number of vector pairs to score (default: 20)",
    )
    parser.add_argument(
        "--num-runs",
        type=int,
        default=3,
        help="Number of runs for averaging (default: 3)",
    )
    parser.add_argument(
        "--num-workers",
        type=int,
        default=8,
        help="Threads for the parallel L2 reduction (default: 8)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    pairs = [
        (
            random_vector(rng, args.vocabulary_size, args.nonzeros),
            random_vector(rng, args.vocabulary_size, args.nonzeros),
        )
        for _ in tqdm(range(args.num_pairs), desc="Generating", unit="pair")
    ]

    print(f"\n{'='*60}")
    print("Benchmark Configuration:")
    print(f"  Vocabulary: {args.vocabulary_size:,}")
    print(f"  Non-zeros per vector: {args.nonzeros:,}")
    print(f"  Pairs: {args.num_pairs}")
    print(f"  Runs: {args.num_runs}")
    print(f"{'='*60}\n")

    for scoring_type in ScoringType:
        scoring = make_scoring(scoring_type)
        mean, std, scores = benchmark_scoring(scoring, pairs, args.num_runs)
        print(
            f"  {scoring_type.value:<14} {mean * 1000 / args.num_pairs:8.3f} ms/pair "
            f"(± {std * 1000 / args.num_pairs:.3f})  mean score {np.mean(scores):.6f}"
        )

    print("\nL2 sequential vs parallel...")
    sequential = L2Scoring(num_workers=1)
    parallel = L2Scoring(num_workers=args.num_workers, min_entries_for_parallel=1)
    mean1, _, scores1 = benchmark_scoring(sequential, pairs, args.num_runs)
    mean2, _, scores2 = benchmark_scoring(parallel, pairs, args.num_runs)
    matches = np.allclose(scores1, scores2, atol=1e-9)

    print(f"\n{'='*60}")
    print("Summary:")
    print(f"{'='*60}")
    print(f"  Sequential: {mean1:.3f}s, parallel ({args.num_workers} workers): {mean2:.3f}s")
    speedup = mean1 / mean2 if mean2 > 0 else float("inf")
    print(f"  Speedup: {speedup:.2f}x")
    print(f"  Correctness: {'PASS' if matches else 'FAIL'}")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
