#!/usr/bin/env python3
"""
Test runner for the Discord Trivia Bot.
Runs all unit tests and prints a summary report.

Usage:
    python -m tests.run_all_tests [category]
"""
import unittest
import sys
import time

TEST_MODULES = {
    'models': ['tests.test_scoring', 'tests.test_session_registry'],
    'config': ['tests.test_config_manager'],
    'data': ['tests.test_data_manager'],
    'engine': ['tests.test_quiz_engine'],
    'leaderboard': ['tests.test_leaderboard'],
    'views': ['tests.test_views'],
    'cleanup': ['tests.test_button_cleanup'],
    'controller': ['tests.test_quiz_controller'],
    'bot': ['tests.test_bot', 'tests.test_main'],
}


def load_suite(module_names):
    """Load the named test modules into one suite."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module_name in module_names:
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except Exception as e:
            print(f"✗ Failed to load {module_name}: {e}")

    return suite


def run_test_suite(module_names):
    """Run the given test modules and print a summary report."""
    print("=" * 70)
    print("Discord Trivia Bot - Test Suite")
    print("=" * 70)

    suite = load_suite(module_names)

    print("\n" + "=" * 70)
    print("Running Tests...")
    print("=" * 70)

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed/total_tests)*100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {end_time - start_time:.2f} seconds")

    return failures == 0 and errors == 0


if __name__ == '__main__':
    if len(sys.argv) > 1:
        category = sys.argv[1]
        if category not in TEST_MODULES:
            print(f"Unknown category: {category}")
            print(f"Available categories: {', '.join(TEST_MODULES)}")
            sys.exit(1)
        modules = TEST_MODULES[category]
    else:
        modules = [name for names in TEST_MODULES.values() for name in names]

    sys.exit(0 if run_test_suite(modules) else 1)
