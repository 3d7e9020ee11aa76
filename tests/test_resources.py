import threading
import unittest

from tmxregion.documents import TiledMap, TiledTileset
from tmxregion.errors import (
    DuplicateLoadError,
    ParseError,
    StructuralError,
    TiledException,
    UnresolvedReferenceError,
    UnsupportedEncodingError,
)
from tmxregion.resources import LoadState, ResourceLoadCoordinator

MAP_XML = """<map width="2" height="1" tilewidth="16" tileheight="16">
 <tileset firstgid="1" source="tilesets/terrain.tsx"/>
 <tileset firstgid="9" source="tilesets/props.tsx"/>
 <tileset firstgid="20" name="inline" tilewidth="16" tileheight="16" columns="1">
  <image source="inline.png" width="16" height="16"/>
 </tileset>
 <layer id="1" name="ground" width="2" height="1">
  <data encoding="csv">1,9</data>
 </layer>
 <objectgroup id="2" name="things">
  <object id="1" template="../templates/chest.tx" x="32" y="48"/>
 </objectgroup>
</map>"""

TERRAIN_XML = """<tileset name="terrain" tilewidth="16" tileheight="16" columns="4">
 <image source="../images/terrain.png" width="64" height="32"/>
</tileset>"""

PROPS_XML = """<tileset name="props" tilewidth="16" tileheight="16" columns="2">
 <image source="../images/props.png" width="32" height="16"/>
</tileset>"""

TEMPLATE_XML = """<template>
 <tileset firstgid="1" source="../maps/tilesets/props.tsx"/>
 <object name="chest" gid="2" width="16" height="16"/>
</template>"""

FILES = {
    "maps/level.tmx": MAP_XML,
    "maps/tilesets/terrain.tsx": TERRAIN_XML,
    "maps/tilesets/props.tsx": PROPS_XML,
    "templates/chest.tx": TEMPLATE_XML,
}


class MemoryLoader:
    def __init__(self, files=None):
        self.files = dict(FILES if files is None else files)
        self.reads = list()

    def __call__(self, key):
        self.reads.append(key)
        try:
            return self.files[key].encode("utf-8")
        except KeyError:
            raise FileNotFoundError(key)


class FakeDocument:
    def __init__(self, dependencies):
        self._dependencies = dependencies

    def dependencies(self):
        return list(self._dependencies)


class StateMachineTest(unittest.TestCase):
    def setUp(self):
        self.coordinator = ResourceLoadCoordinator(MemoryLoader())

    def test_unknown_key_is_unloaded(self):
        self.assertIs(LoadState.UNLOADED, self.coordinator.state("nothing.tmx"))

    def test_begin_load_twice(self):
        self.coordinator.try_begin_load("a.tsx")
        with self.assertRaises(DuplicateLoadError) as context:
            self.coordinator.try_begin_load("a.tsx")
        self.assertIs(LoadState.LOADING, context.exception.state)
        self.assertEqual("a.tsx", context.exception.key)

    def test_begin_load_after_loaded(self):
        self.coordinator.try_begin_load("a.tsx")
        self.coordinator.complete_load("a.tsx", FakeDocument(["a.png"]))
        with self.assertRaises(DuplicateLoadError) as context:
            self.coordinator.try_begin_load("a.tsx")
        self.assertIs(LoadState.LOADED, context.exception.state)

    def test_keys_are_normalized(self):
        key = self.coordinator.try_begin_load("maps/./x/../a.tsx")
        self.assertEqual("maps/a.tsx", key)
        with self.assertRaises(DuplicateLoadError):
            self.coordinator.try_begin_load("maps/a.tsx")

    def test_complete_without_begin(self):
        with self.assertRaises(TiledException):
            self.coordinator.complete_load("a.tsx", FakeDocument([]))

    def test_fail_load_returns_to_unloaded(self):
        self.coordinator.try_begin_load("a.tsx")
        error = ParseError("bad")
        with self.assertLogs("tmxregion.resources", level="ERROR"):
            self.coordinator.fail_load("a.tsx", error)
        record = self.coordinator.record("a.tsx")
        self.assertIs(LoadState.UNLOADED, record.state)
        self.assertIs(error, record.error)
        self.coordinator.try_begin_load("a.tsx")

    def test_unload(self):
        self.coordinator.try_begin_load("a.tsx")
        self.coordinator.complete_load("a.tsx", FakeDocument([]))
        self.coordinator.unload("a.tsx")
        self.assertIs(LoadState.UNLOADED, self.coordinator.state("a.tsx"))
        self.assertIsNone(self.coordinator.record("a.tsx").document)

    def test_unload_not_loaded(self):
        with self.assertRaises(UnresolvedReferenceError):
            self.coordinator.unload("a.tsx")

    def test_concurrent_begin_load(self):
        barrier = threading.Barrier(2)
        outcomes = list()

        def worker():
            barrier.wait()
            try:
                self.coordinator.try_begin_load("shared.tsx")
                outcomes.append("ok")
            except DuplicateLoadError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(["duplicate", "ok"], sorted(outcomes))

    def test_many_concurrent_begin_load(self):
        barrier = threading.Barrier(16)
        successes = list()

        def worker():
            barrier.wait()
            try:
                successes.append(self.coordinator.try_begin_load("busy.tmx"))
            except DuplicateLoadError:
                pass

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(["busy.tmx"], successes)


class LoadTest(unittest.TestCase):
    def setUp(self):
        self.loader = MemoryLoader()
        self.coordinator = ResourceLoadCoordinator(self.loader)

    def test_load_tileset(self):
        tileset = self.coordinator.load("maps/tilesets/terrain.tsx")
        self.assertIsInstance(tileset, TiledTileset)
        self.assertIn("maps/tilesets/terrain.tsx", self.coordinator)
        self.assertEqual(["maps/images/terrain.png"], self.coordinator.dependencies("maps/tilesets/terrain.tsx"))

    def test_load_twice(self):
        self.coordinator.load("maps/tilesets/terrain.tsx")
        with self.assertRaises(DuplicateLoadError):
            self.coordinator.load("maps/tilesets/terrain.tsx")
        self.assertEqual(1, len(self.loader.reads))

    def test_unsupported_extension(self):
        self.loader.files["notes.txt"] = "hello"
        with self.assertLogs("tmxregion.resources", level="ERROR"):
            with self.assertRaises(UnsupportedEncodingError):
                self.coordinator.load("notes.txt")
        self.assertIs(LoadState.UNLOADED, self.coordinator.state("notes.txt"))

    def test_decode_failure_is_recorded(self):
        self.loader.files["broken.tsx"] = "<tileset"
        with self.assertLogs("tmxregion.resources", level="ERROR"):
            with self.assertRaises(ParseError):
                self.coordinator.load("broken.tsx")
        record = self.coordinator.record("broken.tsx")
        self.assertIs(LoadState.UNLOADED, record.state)
        self.assertIsInstance(record.error, ParseError)

        # fixed on disk, loads again
        self.loader.files["broken.tsx"] = TERRAIN_XML
        self.assertIsInstance(self.coordinator.load("broken.tsx"), TiledTileset)
        self.assertIsNone(self.coordinator.record("broken.tsx").error)

    def test_missing_file(self):
        with self.assertLogs("tmxregion.resources", level="ERROR"):
            with self.assertRaises(FileNotFoundError):
                self.coordinator.load("missing.tmx")
        self.assertIs(LoadState.UNLOADED, self.coordinator.state("missing.tmx"))

    def test_get_not_loaded(self):
        with self.assertRaises(UnresolvedReferenceError):
            self.coordinator.get("maps/level.tmx")


class LoadMapTest(unittest.TestCase):
    def setUp(self):
        self.coordinator = ResourceLoadCoordinator(MemoryLoader())

    def test_loads_dependencies(self):
        self.coordinator.load_map("maps/level.tmx")
        for key in FILES:
            self.assertIs(LoadState.LOADED, self.coordinator.state(key), key)

    def test_resolves_templates(self):
        tiledmap = self.coordinator.load_map("maps/level.tmx")
        obj = tiledmap.get_object_by_id(1)
        self.assertEqual("chest", obj.name)
        self.assertEqual(2, obj.gid)
        self.assertEqual(32.0, obj.x)
        self.assertEqual("maps/tilesets/props.tsx", obj.tileset.source)

    def test_dependency_graph(self):
        self.coordinator.load_map("maps/level.tmx")
        graph = self.coordinator.dependency_graph()
        self.assertEqual(
            ["maps/tilesets/terrain.tsx", "maps/tilesets/props.tsx", "templates/chest.tx"],
            graph["maps/level.tmx"],
        )
        self.assertEqual(["maps/images/props.png"], graph["maps/tilesets/props.tsx"])
        self.assertEqual(["maps/tilesets/props.tsx"], graph["templates/chest.tx"])

    def test_load_order(self):
        self.coordinator.load_map("maps/level.tmx")
        self.assertEqual(
            [
                "maps/images/terrain.png",
                "maps/tilesets/terrain.tsx",
                "maps/images/props.png",
                "maps/tilesets/props.tsx",
                "templates/chest.tx",
                "maps/level.tmx",
            ],
            self.coordinator.load_order("maps/level.tmx"),
        )

    def test_load_order_cycle(self):
        for key, deps in (("a.tmx", ["b.tx"]), ("b.tx", ["a.tmx"])):
            self.coordinator.try_begin_load(key)
            self.coordinator.complete_load(key, FakeDocument(deps))
        with self.assertRaises(StructuralError):
            self.coordinator.load_order("a.tmx")

    def test_skips_dependency_being_loaded(self):
        self.coordinator.try_begin_load("maps/tilesets/terrain.tsx")
        self.coordinator.load_map("maps/level.tmx")
        self.assertIs(LoadState.LOADING, self.coordinator.state("maps/tilesets/terrain.tsx"))
        self.assertIs(LoadState.LOADED, self.coordinator.state("maps/tilesets/props.tsx"))

        query = self.coordinator.region_query("maps/level.tmx")
        with self.assertLogs("tmxregion.renderer", level="WARNING"):
            tiles = query.whole_map()
        self.assertEqual([9], [p.tile.gid for p in tiles])

    def test_tiles_appear_once_dependency_finishes_loading(self):
        key = self.coordinator.try_begin_load("maps/tilesets/terrain.tsx")
        self.coordinator.load_map("maps/level.tmx")
        with self.assertLogs("tmxregion.renderer", level="WARNING"):
            tiles = self.coordinator.region_query("maps/level.tmx").whole_map()
        self.assertEqual([9], [p.tile.gid for p in tiles])

        self.coordinator.complete_load(key, TiledTileset.from_xml_string(TERRAIN_XML, key))
        tiles = self.coordinator.region_query("maps/level.tmx").whole_map()
        self.assertEqual([1, 9], [p.tile.gid for p in tiles])

    def test_failed_dependency_unloads_map(self):
        loader = MemoryLoader()
        loader.files["maps/tilesets/props.tsx"] = '<tileset name="props" tilewidth="16" tileheight="16"/>'
        coordinator = ResourceLoadCoordinator(loader)
        with self.assertLogs("tmxregion.resources", level="ERROR") as logs:
            with self.assertRaises(StructuralError):
                coordinator.load_map("maps/level.tmx")
        self.assertTrue(any("maps/level.tmx" in line for line in logs.output))

        record = coordinator.record("maps/level.tmx")
        self.assertIs(LoadState.UNLOADED, record.state)
        self.assertIsInstance(record.error, StructuralError)
        self.assertIs(LoadState.UNLOADED, coordinator.state("maps/tilesets/props.tsx"))
        self.assertIs(LoadState.LOADED, coordinator.state("maps/tilesets/terrain.tsx"))
        with self.assertRaises(UnresolvedReferenceError):
            coordinator.region_query("maps/level.tmx")

        # fixed on disk, the whole map loads again
        loader.files["maps/tilesets/props.tsx"] = PROPS_XML
        tiledmap = coordinator.load_map("maps/level.tmx")
        self.assertIsInstance(tiledmap, TiledMap)
        for key in FILES:
            self.assertIs(LoadState.LOADED, coordinator.state(key), key)
        self.assertIsNone(coordinator.record("maps/level.tmx").error)

    def test_load_map_of_tileset(self):
        with self.assertRaises(StructuralError):
            self.coordinator.load_map("maps/tilesets/terrain.tsx")

    def test_resolve_tileset(self):
        tiledmap = self.coordinator.load_map("maps/level.tmx")
        terrain, props, inline = tiledmap.tilesets
        self.assertEqual("terrain", self.coordinator.resolve_tileset(terrain).name)
        self.assertIs(inline.tileset, self.coordinator.resolve_tileset(inline))

    def test_resolve_tileset_not_loaded(self):
        tiledmap = self.coordinator.load("maps/level.tmx")
        with self.assertRaises(UnresolvedReferenceError):
            self.coordinator.resolve_tileset(tiledmap.tilesets[0])

    def test_region_query(self):
        self.coordinator.load_map("maps/level.tmx")
        query = self.coordinator.region_query("maps/level.tmx")
        tiles = query.whole_map()
        self.assertEqual(
            ["maps/images/terrain.png", "maps/images/props.png"],
            [p.tile.image for p in tiles],
        )
        self.assertIs(query.cache, self.coordinator.region_query("maps/level.tmx").cache)

    def test_unload_discards_cache(self):
        self.coordinator.load_map("maps/level.tmx")
        first = self.coordinator.region_query("maps/level.tmx")
        first.whole_map()
        self.coordinator.unload("maps/level.tmx")
        with self.assertRaises(UnresolvedReferenceError):
            self.coordinator.region_query("maps/level.tmx")

        self.coordinator.load("maps/level.tmx")
        second = self.coordinator.region_query("maps/level.tmx")
        self.assertIsNot(first.cache, second.cache)
        self.assertEqual(0, len(second.cache))

    def test_region_query_of_tileset(self):
        self.coordinator.load("maps/tilesets/terrain.tsx")
        with self.assertRaises(UnresolvedReferenceError):
            self.coordinator.region_query("maps/tilesets/terrain.tsx")

    def test_returns_map(self):
        self.assertIsInstance(self.coordinator.load_map("maps/level.tmx"), TiledMap)
