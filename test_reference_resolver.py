#!/usr/bin/env python3
"""
Test suite for reference image resolution

Tests:
1. User template anchors every job
2. First slide image anchors later jobs
3. No reference when job 0 failed
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gbase_slides.core.reference_resolver import ReferenceResolver
from gbase_slides.models.batch import ImageData, ReferenceSource
from testing_support import make_batch

print("=" * 60)
print("GBASE SLIDES REFERENCE RESOLVER TEST SUITE")
print("=" * 60)
print()

TEMPLATE = ImageData(data=b"template", mime_type="image/jpeg")
FIRST = ImageData(data=b"first-slide")


def test_user_template_wins():
    """Test 1: A template is used for every index, cached image or not."""
    print("[TEST 1] User Template")
    print("-" * 50)

    resolver = ReferenceResolver()
    batch = make_batch(4, user_template=TEMPLATE)
    for index in range(4):
        for cached in (None, FIRST):
            assert resolver.resolve(batch, index, cached) == TEMPLATE
            assert resolver.source_for(batch, index, cached) == ReferenceSource.USER_TEMPLATE
    print("  ✓ Template used for all jobs, job 0 included")
    print()


def test_first_slide_reference():
    """Test 2: Without a template, job 0 has no reference and later jobs reuse it."""
    print("[TEST 2] First Slide Reference")
    print("-" * 50)

    resolver = ReferenceResolver()
    batch = make_batch(3)

    assert resolver.resolve(batch, 0, None) is None
    assert resolver.source_for(batch, 0, None) == ReferenceSource.NONE
    print("  ✓ Job 0 has no reference")

    assert resolver.resolve(batch, 1, FIRST) == FIRST
    assert resolver.resolve(batch, 2, FIRST) == FIRST
    assert resolver.source_for(batch, 2, FIRST) == ReferenceSource.FIRST_SLIDE
    print("  ✓ Later jobs reuse the first slide image")
    print()


def test_first_slide_failed():
    """Test 3: A failed job 0 leaves later jobs without a reference."""
    print("[TEST 3] First Slide Failed")
    print("-" * 50)

    resolver = ReferenceResolver()
    batch = make_batch(3)
    for index in (1, 2):
        assert resolver.resolve(batch, index, None) is None
        assert resolver.source_for(batch, index, None) == ReferenceSource.NONE
    print("  ✓ No reference when there is no cached image")
    print()


if __name__ == "__main__":
    tests = [
        ("User Template", test_user_template_wins),
        ("First Slide Reference", test_first_slide_reference),
        ("First Slide Failed", test_first_slide_failed),
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
