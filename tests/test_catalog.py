"""
Tests for the bucket store operations of ItemCatalog.
Every test runs against both the in-memory and the SQLite store.
"""
import pytest

from datcatalog.core.models import Blank, Header, ItemKey, ItemType, Machine, Source
from datcatalog.errors import StoreUnavailableError


# =============================================================================
# 1. KEYS AND ADDING
# =============================================================================
class TestAddingItems:

    def test_ensure_key_reports_existence(self, catalog):
        assert catalog.ensure_key("game") is False
        assert catalog.ensure_key("game") is True
        assert catalog.keys == ["game"]
        assert catalog.get_items("game") == []

    def test_add_creates_key_and_counts(self, catalog, rom_factory):
        catalog.add("game", rom_factory())

        assert catalog.contains_key("game")
        assert len(catalog.get_items("game")) == 1
        assert catalog.statistics.total_count == 1

    def test_add_none_only_creates_key(self, catalog):
        catalog.add("game", None)
        assert catalog.keys == ["game"]
        assert catalog.statistics.total_count == 0

    def test_add_range_keeps_order(self, catalog, rom_factory):
        names = ["c.rom", "a.rom", "b.rom"]
        catalog.add_range("game", [rom_factory(name=n) for n in names])
        catalog.add("game", rom_factory(name="d.rom"))

        assert [i.name for i in catalog.get_items("game")] == names + ["d.rom"]
        assert catalog.statistics.total_count == 4

    def test_add_machine_without_items_adds_blank(self, catalog):
        added = catalog.add_machine(Machine(name="empty"), Source(index=1))

        items = catalog.get_items("empty")
        assert added == 1
        assert len(items) == 1
        assert isinstance(items[0], Blank)
        assert items[0].source.index == 1
        assert catalog.statistics.count(ItemType.BLANK) == 1

    def test_add_machine_assigns_machine_and_source(self, catalog, rom_factory):
        machine = Machine(name="pacman", year="1980")
        catalog.add_machine(machine, Source(index=2, name="arcade.dat"),
                            [rom_factory(machine=None), rom_factory(name="b.rom", machine=None)])

        items = catalog.get_items("pacman")
        assert len(items) == 2
        assert all(i.machine.name == "pacman" and i.machine.year == "1980" for i in items)
        assert all(i.source.name == "arcade.dat" for i in items)

    def test_add_machine_follows_current_bucketing(self, catalog, rom_factory):
        catalog.add("seed", rom_factory())
        catalog.bucket_by(ItemKey.SHA1)

        catalog.add_machine(Machine(name="late"), Source(), [rom_factory(sha1="F" * 40)])

        assert catalog.contains_key("f" * 40)
        assert not catalog.contains_key("late")

    def test_sorted_keys_use_natural_order(self, catalog, rom_factory):
        for key in ["game10", "game2", "Game1"]:
            catalog.add(key, rom_factory(machine=key))
        assert catalog.sorted_keys == ["Game1", "game2", "game10"]

    def test_header_is_kept(self, catalog):
        catalog.set_header(Header(name="MAME", type="SuperDAT"))
        assert catalog.header.name == "MAME"
        assert catalog.header.is_superdat


# =============================================================================
# 2. LOOKUP AND REMOVAL
# =============================================================================
class TestLookupAndRemoval:

    def test_contains_matches_equal_items(self, catalog, rom_factory):
        catalog.add("game", rom_factory())

        assert catalog.contains("game", rom_factory(machine="elsewhere"))
        assert not catalog.contains("game", rom_factory(crc="00000000"))
        assert not catalog.contains("missing", rom_factory())
        assert not catalog.contains(None, rom_factory())
        assert not catalog.contains_key(None)

    def test_remove_first_match(self, catalog, rom_factory):
        catalog.add_range("game", [rom_factory(), rom_factory(name="b.rom")])

        assert catalog.remove("game", rom_factory(name="b.rom"))
        assert [i.name for i in catalog.get_items("game")] == ["foo.rom"]
        assert catalog.statistics.total_count == 1

    def test_remove_falls_back_to_equality(self, catalog, rom_factory):
        catalog.add("game", rom_factory(date="1999"))

        assert catalog.remove("game", rom_factory(machine="other"))
        assert catalog.get_items("game") == []
        assert catalog.statistics.total_count == 0

    def test_identical_copy_beats_earlier_equal_item(self, catalog, rom_factory):
        """An equal item stored first must not shadow the exact copy being removed."""
        catalog.add_range("game", [rom_factory(date="1990"), rom_factory(date="1999")])

        assert catalog.remove("game", rom_factory(date="1999"))
        assert [i.date for i in catalog.get_items("game")] == ["1990"]

    def test_remove_missing(self, catalog, rom_factory):
        catalog.add("game", rom_factory())
        assert not catalog.remove("game", rom_factory(crc="00000000", sha1="b" * 40))
        assert not catalog.remove("nope", rom_factory())

    def test_remove_key(self, catalog, rom_factory):
        catalog.add_range("game", [rom_factory(), rom_factory(name="b.rom")])

        assert catalog.remove_key("game")
        assert not catalog.contains_key("game")
        assert catalog.statistics.total_count == 0
        assert not catalog.remove_key("game")

    def test_reset_keeps_key(self, catalog, rom_factory):
        catalog.add("game", rom_factory())

        assert catalog.reset("game")
        assert catalog.contains_key("game")
        assert catalog.get_items("game") == []
        assert catalog.statistics.total_count == 0

    def test_filtered_items_hide_removed_and_nameless(self, catalog, rom_factory):
        removed = rom_factory(name="gone.rom")
        removed.remove = True
        nameless = rom_factory(name="orphan.rom", machine=None)
        catalog.add_range("game", [rom_factory(), removed, nameless])

        assert [i.name for i in catalog.filtered_items("game")] == ["foo.rom"]
        assert len(catalog.get_items("game")) == 3


class TestIdentityRemoval:

    def test_remove_prefers_the_same_object(self, memory_catalog, rom_factory):
        first, second = rom_factory(), rom_factory()
        memory_catalog.add_range("game", [first, second])

        memory_catalog.remove("game", second)

        assert memory_catalog.get_items("game") == [first]

    def test_identity_beats_serialized_twin(self, memory_catalog, rom_factory):
        """Two identical roms: removing the later object keeps the earlier one."""
        first, second, third = rom_factory(), rom_factory(), rom_factory()
        memory_catalog.add_range("game", [first, second, third])

        memory_catalog.remove("game", third)

        assert memory_catalog.get_items("game") == [first, second]


# =============================================================================
# 3. CLEANUP
# =============================================================================
class TestCleanup:

    def test_clear_empty_drops_blank_only_keys(self, catalog, rom_factory):
        catalog.add_machine(Machine(name="empty"), Source())
        catalog.add("game", rom_factory())
        catalog.ensure_key("nothing")

        catalog.clear_empty()

        assert catalog.keys == ["game"]
        assert catalog.statistics.count(ItemType.BLANK) == 0
        assert catalog.statistics.total_count == 1

    def test_clear_marked_drops_flagged_items(self, catalog, rom_factory):
        flagged = rom_factory(name="b.rom")
        flagged.remove = True
        only_flagged = rom_factory(machine="other")
        only_flagged.remove = True
        catalog.add_range("game", [rom_factory(), flagged])
        catalog.add("other", only_flagged)

        catalog.clear_marked()

        assert [i.name for i in catalog.get_items("game")] == ["foo.rom"]
        assert not catalog.contains_key("other")
        assert catalog.statistics.total_count == 1
        assert catalog.statistics.removed_count == 0


# =============================================================================
# 4. UNAVAILABLE STORE
# =============================================================================
class TestUnavailableStore:
    """Queries degrade to empty results; mutations fail loudly."""

    def test_queries_degrade_to_empty(self, catalog, rom_factory):
        catalog.add("game", rom_factory())
        catalog.close()

        assert catalog.keys == []
        assert catalog.sorted_keys == []
        assert not catalog.contains_key("game")
        assert catalog.filtered_items("game") == []

    def test_mutations_raise(self, catalog, rom_factory):
        catalog.close()

        with pytest.raises(StoreUnavailableError):
            catalog.add("game", rom_factory())
        with pytest.raises(StoreUnavailableError):
            catalog.bucket_by(ItemKey.SHA1)
