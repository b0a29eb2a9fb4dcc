import unittest

from autolog.infinite_scroll import InfiniteScroll, VisibilityTrigger


class InfiniteScrollTests(unittest.TestCase):
    def test_shows_first_page(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20)

        self.assertEqual(scroll.visible_items, list(range(20)))
        self.assertEqual(scroll.window_size, 20)
        self.assertTrue(scroll.can_load_more)

    def test_load_more_grows_window_until_exhausted(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20, has_more=False)

        self.assertTrue(scroll.load_more())
        self.assertEqual(scroll.window_size, 40)
        self.assertTrue(scroll.load_more())
        self.assertEqual(scroll.window_size, 45)
        self.assertFalse(scroll.load_more())
        self.assertEqual(scroll.current_page, 3)
        self.assertFalse(scroll.can_load_more)

    def test_requests_remote_records_when_local_exhausted(self) -> None:
        calls = []
        scroll = InfiniteScroll(
            list(range(10)),
            items_per_page=20,
            has_more=True,
            on_load_more=lambda: calls.append("more"),
        )

        self.assertFalse(scroll.load_more())
        self.assertEqual(calls, ["more"])
        self.assertEqual(scroll.current_page, 1)

    def test_no_remote_request_without_more_records(self) -> None:
        calls = []
        scroll = InfiniteScroll(
            list(range(10)),
            items_per_page=20,
            has_more=False,
            on_load_more=lambda: calls.append("more"),
        )

        scroll.load_more()

        self.assertEqual(calls, [])

    def test_loading_blocks_load_more(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20, loading=True)

        self.assertFalse(scroll.load_more())
        self.assertEqual(scroll.current_page, 1)

    def test_length_change_resets_to_first_page(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20)
        scroll.load_more()

        scroll.update(list(range(46)))

        self.assertEqual(scroll.current_page, 1)
        self.assertEqual(scroll.window_size, 20)

    def test_same_length_keeps_window(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20)
        scroll.load_more()

        scroll.update(list(range(100, 145)))

        self.assertEqual(scroll.current_page, 2)
        self.assertEqual(scroll.visible_items[0], 100)

    def test_reset_returns_to_first_page(self) -> None:
        scroll = InfiniteScroll(list(range(45)), items_per_page=20, has_more=False)
        scroll.load_more()
        scroll.load_more()

        scroll.reset()

        self.assertEqual(scroll.current_page, 1)
        self.assertEqual(scroll.window_size, 20)
        self.assertEqual(scroll.visible_items, list(range(20)))
        self.assertTrue(scroll.load_more())

    def test_update_changes_flags(self) -> None:
        items = list(range(5))
        scroll = InfiniteScroll(items, items_per_page=20)

        scroll.update(items, has_more=False, loading=True)

        self.assertFalse(scroll.has_more)
        self.assertTrue(scroll.loading)

    def test_empty_items(self) -> None:
        scroll = InfiniteScroll(None, items_per_page=20, has_more=False)

        self.assertEqual(scroll.visible_items, [])
        self.assertFalse(scroll.load_more())

    def test_rejects_non_positive_page_size(self) -> None:
        with self.assertRaises(ValueError):
            InfiniteScroll([], items_per_page=0)


class VisibilityTriggerTests(unittest.TestCase):
    def test_fires_once_while_sentinel_stays_visible(self) -> None:
        scroll = InfiniteScroll(list(range(100)), items_per_page=20)
        trigger = VisibilityTrigger(scroll)

        self.assertTrue(trigger.observe(50))
        self.assertFalse(trigger.observe(10))
        self.assertEqual(scroll.current_page, 2)

    def test_rearms_after_leaving_margin(self) -> None:
        scroll = InfiniteScroll(list(range(100)), items_per_page=20)
        trigger = VisibilityTrigger(scroll, root_margin=100)

        trigger.observe(0)
        trigger.observe(500)
        trigger.observe(0)

        self.assertEqual(scroll.current_page, 3)

    def test_ignores_distant_sentinel(self) -> None:
        scroll = InfiniteScroll(list(range(100)), items_per_page=20)
        trigger = VisibilityTrigger(scroll)

        self.assertFalse(trigger.observe(101))
        self.assertEqual(scroll.current_page, 1)

    def test_does_not_fire_while_loading(self) -> None:
        calls = []
        scroll = InfiniteScroll([], items_per_page=20, on_load_more=lambda: calls.append(1), loading=True)
        trigger = VisibilityTrigger(scroll)

        self.assertFalse(trigger.observe(0))
        self.assertEqual(calls, [])

    def test_fires_again_when_records_arrive(self) -> None:
        calls = []
        scroll = InfiniteScroll(list(range(20)), items_per_page=20, on_load_more=lambda: calls.append(1))
        trigger = VisibilityTrigger(scroll)

        trigger.observe(0)
        scroll.update(list(range(40)))
        trigger.observe(0)

        self.assertEqual(calls, [1])
        self.assertEqual(scroll.current_page, 2)


if __name__ == "__main__":
    unittest.main()
