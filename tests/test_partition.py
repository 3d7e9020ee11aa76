import threading
import unittest

from tmxregion.errors import UnresolvedReferenceError
from tmxregion.geometry import Rect
from tmxregion.partition import ChunkPartitionStore, LayerCache


class ChunkPartitionStoreTest(unittest.TestCase):
    def setUp(self):
        self.calls = list()
        self.left = Rect(-32, 0, 32, 32)
        self.right = Rect(0, 0, 32, 32)
        self.far = Rect(320, 320, 32, 32)
        chunks = {self.left: "left", self.right: "right", self.far: "far"}
        self.store = ChunkPartitionStore(chunks, self.decode)

    def decode(self, source):
        self.calls.append(source)
        return [source + "-tile"], True

    def test_nothing_decoded_up_front(self):
        self.assertEqual(0, len(self.store))
        self.assertEqual([], self.calls)

    def test_ensure_decoded_twice(self):
        first = self.store.ensure_decoded(self.right)
        second = self.store.ensure_decoded(self.right)
        self.assertEqual(["right"], self.calls)
        self.assertIs(first, second)
        self.assertEqual(1, len(self.store))
        self.assertIn(self.right, self.store)

    def test_unknown_chunk(self):
        with self.assertRaises(UnresolvedReferenceError):
            self.store.ensure_decoded(Rect(1, 1, 1, 1))

    def test_query_decodes_only_intersecting(self):
        tiles = self.store.query(Rect(0, 0, 64, 64))
        self.assertEqual(["right-tile"], tiles)
        self.assertEqual(["right"], self.calls)
        self.assertNotIn(self.left, self.store)
        self.assertNotIn(self.far, self.store)

    def test_query_across_chunks(self):
        tiles = self.store.query(Rect(-16, 0, 32, 16))
        self.assertEqual(["left-tile", "right-tile"], sorted(tiles))

    def test_query_reuses_partitions(self):
        self.store.query(Rect(0, 0, 8, 8))
        self.store.query(Rect(8, 8, 8, 8))
        self.assertEqual(["right"], self.calls)

    def test_incomplete_chunk_is_decoded_again(self):
        attempts = list()

        def decode(source):
            attempts.append(source)
            # the tileset becomes available on the second attempt
            return [source] * len(attempts), len(attempts) > 1

        store = ChunkPartitionStore({self.right: "right"}, decode)
        self.assertEqual(["right"], store.ensure_decoded(self.right))
        self.assertNotIn(self.right, store)

        self.assertEqual(["right", "right"], store.query(Rect(0, 0, 8, 8)))
        self.assertIn(self.right, store)
        self.assertEqual(["right", "right"], store.ensure_decoded(self.right))
        self.assertEqual(2, len(attempts))

    def test_concurrent_decode_keeps_one_entry(self):
        barrier = threading.Barrier(8)
        results = list()

        def decode(source):
            barrier.wait()
            return [source], True

        store = ChunkPartitionStore({self.right: "right"}, decode)

        def worker():
            results.append(store.ensure_decoded(self.right))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(1, len(store))
        self.assertEqual(8, len(results))
        for result in results:
            self.assertIs(results[0], result)


class LayerCacheTest(unittest.TestCase):
    def test_get_or_create_builds_once(self):
        cache = LayerCache()
        calls = list()

        def factory():
            calls.append(1)
            return ["tile"]

        first = cache.get_or_create(0, factory)
        second = cache.get_or_create(0, factory)
        self.assertIs(first, second)
        self.assertEqual(1, len(calls))
        self.assertIn(0, cache)
        self.assertNotIn(1, cache)

    def test_empty_list_is_cached(self):
        cache = LayerCache()
        calls = list()

        def factory():
            calls.append(1)
            return list()

        cache.get_or_create(3, factory)
        cache.get_or_create(3, factory)
        self.assertEqual(1, len(calls))

    def test_setdefault_keeps_first_entry(self):
        cache = LayerCache()
        first = ["a"]
        self.assertIs(first, cache.setdefault(0, first))
        self.assertIs(first, cache.setdefault(0, ["b"]))

    def test_clear(self):
        cache = LayerCache()
        cache.get_or_create(0, list)
        cache.clear()
        self.assertEqual(0, len(cache))
        self.assertIsNone(cache.get(0))
