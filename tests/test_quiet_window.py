import unittest

from first_interactive.config import QuietWindowPolicy
from first_interactive.errors import TraceBusyError
from first_interactive.models import LongTask
from first_interactive.quiet_window import (
    NOT_LONELY,
    find_quiet_window,
    last_lonely_task_index,
    required_window_size_ms
)


def tasks(*spans):
    return [LongTask(start=start, end=end) for start, end in spans]


LONELY_GROUP = [(12750, 12825), (12850, 12930), (12935, 12990)]


class TestRequiredWindowSize(unittest.TestCase):
    def test_starts_at_five_seconds(self):
        self.assertEqual(required_window_size_ms(0), 5000)

    def test_decays_monotonically(self):
        sizes = [required_window_size_ms(t) for t in range(0, 120000, 5000)]
        for earlier, later in zip(sizes, sizes[1:]):
            self.assertGreater(earlier, later)

    def test_approaches_one_second(self):
        self.assertAlmostEqual(required_window_size_ms(1e9), 1000)
        self.assertGreater(required_window_size_ms(600000), 1000)


class TestLastLonelyTaskIndex(unittest.TestCase):
    def test_short_isolated_task_covers_its_group(self):
        long_tasks = tasks((2200, 10000), (11000, 11500), *LONELY_GROUP)
        self.assertEqual(last_lonely_task_index(long_tasks, 2, 5000, 60000), (True, 4))

    def test_single_lonely_task(self):
        long_tasks = tasks((2200, 10000), (14000, 14200))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000), (True, 1))

    def test_not_lonely_within_five_seconds_of_fmp(self):
        long_tasks = tasks((2200, 10000), (11000, 11500), *LONELY_GROUP)
        self.assertEqual(last_lonely_task_index(long_tasks, 2, 10000, 60000), (False, NOT_LONELY))

    def test_not_lonely_too_close_to_trace_end(self):
        long_tasks = tasks((2200, 10000), (14000, 14200))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 15100), (False, NOT_LONELY))

    def test_not_lonely_too_close_to_previous_task(self):
        long_tasks = tasks((2200, 10000), (10900, 11000))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000), (False, NOT_LONELY))

    def test_not_lonely_when_seed_task_is_too_long(self):
        long_tasks = tasks((2200, 10000), (11000, 11500))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000), (False, NOT_LONELY))

    def test_task_spilling_past_envelope_invalidates_group(self):
        long_tasks = tasks((2200, 10000), (12750, 12825), (12900, 13100))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000), (False, NOT_LONELY))

    def test_later_fitting_task_overrides_earlier_spill(self):
        # Tasks may overlap here; the classifier only compares boundaries.
        long_tasks = tasks((2200, 10000), (12750, 12800), (12790, 13100), (12900, 12990))
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000), (True, 3))

    def test_first_task_is_never_lonely(self):
        long_tasks = tasks((12750, 12825))
        self.assertEqual(last_lonely_task_index(long_tasks, 0, 0, 60000), (False, NOT_LONELY))

    def test_policy_overrides_envelope(self):
        long_tasks = tasks((2200, 10000), (11000, 11500))
        policy = QuietWindowPolicy(lonely_task_envelope_ms=600)
        self.assertEqual(last_lonely_task_index(long_tasks, 1, 5000, 60000, policy), (True, 1))


class TestFindQuietWindow(unittest.TestCase):
    def test_returns_fmp_when_there_are_no_long_tasks(self):
        self.assertEqual(find_quiet_window(200, 1000, []), 200)

    def test_returns_fmp_when_long_tasks_are_more_than_5s_out(self):
        self.assertEqual(find_quiet_window(200, 60000, tasks((5600, 6000))), 200)

    def test_returns_first_empty_window_of_5s(self):
        long_tasks = tasks((2200, 4000), (9000, 10000))
        self.assertEqual(find_quiet_window(200, 60000, long_tasks), 4000)

    def test_allows_smaller_windows_farther_away(self):
        # Only 3.5 seconds between the tasks.
        long_tasks = tasks((2200, 15000), (18500, 20000))
        self.assertEqual(find_quiet_window(200, 60000, long_tasks), 15000)

    def test_allows_lonely_tasks(self):
        long_tasks = tasks((2200, 10000), (11000, 11500), *LONELY_GROUP, (14000, 14200))
        self.assertEqual(find_quiet_window(5000, 60000, long_tasks), 11500)

    def test_does_not_allow_lonely_tasks_in_first_5s_after_fmp(self):
        long_tasks = tasks((2200, 10000), (11000, 11500), *LONELY_GROUP)
        self.assertEqual(find_quiet_window(10000, 60000, long_tasks), 12990)

    def test_does_not_allow_large_tasks_in_lonely_group(self):
        long_tasks = tasks((2200, 10000), (11000, 11500), *LONELY_GROUP, (14000, 17000))
        self.assertEqual(find_quiet_window(5000, 60000, long_tasks), 17000)

    def test_raises_when_long_tasks_are_too_close_to_trace_end(self):
        with self.assertRaisesRegex(TraceBusyError, "trace was busy"):
            find_quiet_window(200, 6000, tasks((4000, 5700)))

    def test_raises_when_every_window_is_broken(self):
        long_tasks = tasks((1000, 2000), (2500, 3000), (3500, 4000))
        with self.assertRaises(TraceBusyError):
            find_quiet_window(200, 7000, long_tasks)

    def test_window_ending_exactly_at_trace_end_is_accepted(self):
        fmp = 1000
        long_tasks = tasks((2000, 3000))
        trace_end = 3000 + required_window_size_ms(3000 - fmp)
        self.assertEqual(find_quiet_window(fmp, trace_end, long_tasks), 3000)

    def test_max_quiet_window_policy(self):
        long_tasks = tasks((3000, 3500))
        policy = QuietWindowPolicy(max_quiet_window_ms=2000)
        self.assertEqual(find_quiet_window(200, 60000, long_tasks, policy), 200)


if __name__ == "__main__":
    unittest.main()
