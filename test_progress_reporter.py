#!/usr/bin/env python3
"""
Test suite for queue position and ETA

Tests:
1. ETA formula for first, middle and last jobs
2. ETA during a cooldown and clamping of negative inputs
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gbase_slides.core.progress_reporter import ProgressReporter, estimate_eta

print("=" * 60)
print("GBASE SLIDES PROGRESS REPORTER TEST SUITE")
print("=" * 60)
print()


def test_eta_by_position():
    """Test 1: Remaining jobs after the current one each cost one interval."""
    print("[TEST 1] ETA by Position")
    print("-" * 50)

    reporter = ProgressReporter(interval=65, per_job_estimate=30)

    first = reporter.compute(0, 5)
    assert first.current_index == 0 and first.total == 5
    assert first.eta_seconds == 4 * 65 + 30, first.eta_seconds
    print(f"  ✓ Job 1/5: eta={first.eta_seconds}s")

    middle = reporter.compute(2, 5)
    assert middle.eta_seconds == 2 * 65 + 30
    print(f"  ✓ Job 3/5: eta={middle.eta_seconds}s")

    last = reporter.compute(4, 5)
    assert last.eta_seconds == 30
    assert last.cooldown_remaining == 0
    print(f"  ✓ Job 5/5: eta={last.eta_seconds}s")
    print()


def test_eta_during_cooldown():
    """Test 2: The remaining cooldown is added on top; negatives clamp to zero."""
    print("[TEST 2] ETA During Cooldown")
    print("-" * 50)

    reporter = ProgressReporter(interval=65, per_job_estimate=30)
    status = reporter.compute(1, 3, cooldown_remaining=40)
    assert status.cooldown_remaining == 40
    assert status.eta_seconds == 40 + 65 + 30
    print(f"  ✓ Cooling down 40s before job 2/3: eta={status.eta_seconds}s")

    assert estimate_eta(5, 3, -10, 30, 65) == 30
    print("  ✓ Negative cooldown and overrun index clamp to zero")

    # Fresh snapshot every call
    assert reporter.compute(1, 3, 10) is not reporter.compute(1, 3, 10)
    print("  ✓ No cached results")
    print()


if __name__ == "__main__":
    tests = [
        ("ETA by Position", test_eta_by_position),
        ("ETA During Cooldown", test_eta_during_cooldown),
    ]
    results = []
    for number, (name, test) in enumerate(tests, start=1):
        try:
            test()
            results.append((name, True))
        except Exception as e:
            print(f"  ✗ TEST {number} FAILED: {e}")
            results.append((name, False))

    print("=" * 60)
    passed = sum(1 for _, p in results if p)
    print(f"RESULTS: {passed}/{len(results)} tests passed")
    print("=" * 60)
    sys.exit(0 if passed == len(results) else 1)
