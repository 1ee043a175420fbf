"""
Unit tests for core/models.py
Verifies the item equality contract, bucket keys, cloning, merge helpers and the variant codec.
"""
import json

import pytest

from datcatalog.core.models import (
    ITEM_REGISTRY, Blank, Condition, Configuration, DupeType, ItemKey, ItemStatus, ItemType,
    Machine, MachineType, Rom, Sample, Setting, Source, blank_item, item_from_dict, items_equal,
    register_item)


# =============================================================================
# 1. EQUALITY CONTRACT
# =============================================================================
class TestItemEquality:
    """Equality must be reflexive, symmetric and kind-aware."""

    def test_identical_roms_are_equal_both_ways(self, rom_factory):
        left, right = rom_factory(), rom_factory(machine="other")
        assert left.equals(right)
        assert right.equals(left)

    def test_item_equals_itself(self, rom_factory, nodump_factory):
        rom = rom_factory()
        nodump = nodump_factory()
        assert rom.equals(rom)
        assert nodump.equals(nodump)

    def test_different_kinds_never_equal(self, rom_factory, disk_factory):
        """A Rom and a Disk with the same SHA1 are still different items."""
        rom = rom_factory(sha1="b" * 40, crc=None)
        disk = disk_factory(sha1="b" * 40)
        assert not rom.equals(disk)
        assert not disk.equals(rom)

    def test_hash_comparison_ignores_case(self, rom_factory):
        assert rom_factory(crc="DEADBEEF").equals(rom_factory(crc="deadbeef"))

    def test_conflicting_shared_hash_breaks_equality(self, rom_factory):
        """Same SHA1 but a different CRC means the items differ."""
        assert not rom_factory(crc="00000000").equals(rom_factory(crc="deadbeef"))

    def test_no_shared_hash_is_not_a_match(self, rom_factory):
        only_crc = rom_factory(sha1=None)
        only_sha1 = rom_factory(crc=None)
        assert not only_crc.equals(only_sha1)

    def test_size_mismatch_breaks_equality(self, rom_factory):
        assert not rom_factory(size=1).equals(rom_factory(size=2))

    def test_unknown_size_does_not_break_equality(self, rom_factory):
        assert rom_factory(size=None).equals(rom_factory(size=2))

    def test_nodump_without_hashes_never_equals_another_nodump(self, nodump_factory):
        assert not nodump_factory().equals(nodump_factory())

    def test_none_is_never_equal(self, rom_factory):
        rom = rom_factory()
        assert not rom.equals(None)
        assert not items_equal(None, rom)
        assert not items_equal(rom, None)

    def test_nested_lists_compare_as_sets(self):
        first = Setting(name="dip", value="1",
                        conditions=[Condition(tag="a", value="1"), Condition(tag="b", value="2")])
        second = Setting(name="dip", value="1",
                         conditions=[Condition(tag="b", value="2"), Condition(tag="a", value="1")])
        third = Setting(name="dip", value="1", conditions=[Condition(tag="a", value="1")])

        assert first.equals(second)
        assert not first.equals(third)
        assert not third.equals(first)

    def test_descriptive_items_compare_identity_fields(self):
        assert Sample(name="boom").equals(Sample(name="boom", machine=Machine(name="x")))
        assert not Sample(name="boom").equals(Sample(name="bang"))

    def test_blank_items_match_on_machine_and_source(self):
        machine = Machine(name="empty")
        assert blank_item(machine, Source(index=0)).equals(blank_item(machine, Source(index=0)))
        assert not blank_item(machine, Source(index=0)).equals(blank_item(machine, Source(index=1)))


# =============================================================================
# 2. BUCKET KEYS
# =============================================================================
class TestItemKeys:
    """get_key must produce the grouping key for every bucketing mode."""

    def test_hash_key_is_lowercased_by_default(self, rom_factory):
        rom = rom_factory(sha1="ABCDEF" + "0" * 34)
        assert rom.get_key(ItemKey.SHA1) == "abcdef" + "0" * 34

    def test_hash_key_keeps_case_when_not_normalized(self, rom_factory):
        rom = rom_factory(sha1="ABCDEF" + "0" * 34)
        assert rom.get_key(ItemKey.SHA1, normalize_case=False) == "ABCDEF" + "0" * 34

    def test_missing_hash_falls_back_to_name_and_size(self, rom_factory):
        assert rom_factory(sha256=None).get_key(ItemKey.SHA256) == "foo.rom-1024"

    def test_fallback_without_name_uses_machine_name(self, rom_factory):
        rom = rom_factory(name=None, size=5)
        assert rom.get_key(ItemKey.MD5) == "game-5"

    def test_item_without_hash_fields_uses_fallback(self):
        sample = Sample(name="boom", machine=Machine(name="game"))
        assert sample.get_key(ItemKey.CRC) == "boom"

    def test_machine_key_with_and_without_source_context(self, rom_factory):
        rom = rom_factory(machine="pacman", source=3)
        assert rom.get_key(ItemKey.MACHINE) == "pacman"
        assert rom.get_key(ItemKey.MACHINE, ignore_source_context=False) == "pacman|3"

    def test_superdat_machine_names_are_plain_keys(self, rom_factory):
        rom = rom_factory(machine="Nintendo/Game Boy/Tetris")
        assert rom.get_key(ItemKey.MACHINE) == "Nintendo/Game Boy/Tetris"

    def test_null_mode_gives_empty_key(self, rom_factory):
        assert rom_factory().get_key(ItemKey.NULL) == ""


# =============================================================================
# 3. CLONE / MERGE HELPERS
# =============================================================================
class TestCloneAndMergeHelpers:
    """Helpers used by the merge engine."""

    def test_clone_owns_machine_and_source(self, rom_factory):
        rom = rom_factory()
        copy = rom.clone()
        copy.machine.name = "changed"
        copy.source.index = 9

        assert rom.machine.name == "game"
        assert rom.source.index == 0
        assert copy.equals(rom)

    def test_fill_missing_copies_only_empty_fields(self, rom_factory):
        survivor = rom_factory(date=None, region="EU")
        duplicate = rom_factory(date="1999", region="US", md5="f" * 32)

        survivor.fill_missing(duplicate)

        assert survivor.date == "1999"
        assert survivor.md5 == "f" * 32
        assert survivor.region == "EU"

    def test_fill_missing_ignores_other_kinds(self, rom_factory, disk_factory):
        rom = rom_factory(md5=None)
        rom.fill_missing(disk_factory(md5="e" * 32))
        assert rom.md5 is None

    def test_duplicate_status_internal_all(self, rom_factory):
        status = rom_factory().get_duplicate_status(rom_factory())
        assert status == DupeType.INTERNAL | DupeType.ALL

    def test_duplicate_status_external_hash(self, rom_factory):
        status = rom_factory().get_duplicate_status(rom_factory(name="bar.rom", machine="x", source=1))
        assert status == DupeType.EXTERNAL | DupeType.HASH

    def test_repr_lists_variant_fields(self, rom_factory):
        text = repr(rom_factory())
        assert text.startswith("Rom(name='foo.rom'")
        assert "crc='deadbeef'" in text

    def test_blank_item_copies_machine(self):
        machine = Machine(name="empty")
        blank = blank_item(machine, Source(index=2))
        machine.name = "renamed"

        assert isinstance(blank, Blank)
        assert blank.item_type == ItemType.BLANK
        assert blank.machine.name == "empty"
        assert blank.source.index == 2


# =============================================================================
# 4. REGISTRY AND CODEC
# =============================================================================
class TestVariantRegistry:
    """Every variant kind is registered and survives the dict codec used by stores."""

    def test_every_item_type_is_registered(self):
        assert set(ITEM_REGISTRY) == set(ItemType)

    def test_registering_a_kind_twice_fails(self):
        with pytest.raises(ValueError, match="already registered"):
            register_item(ItemType.ROM)(Rom)

    def test_canonical_order_starts_with_hash_bearing_kinds(self):
        assert ItemType.ROM.sort_index == 0
        assert ItemType.DISK.sort_index < ItemType.SAMPLE.sort_index
        assert ItemType.BLANK.sort_index == len(ItemType) - 1
        assert ItemType.MEDIA.is_hash_bearing
        assert not ItemType.SAMPLE.is_hash_bearing

    def test_rom_round_trip_through_json(self, rom_factory):
        rom = rom_factory(status=ItemStatus.VERIFIED, date="1999")
        rom.machine.machine_type = MachineType.BIOS | MachineType.DEVICE
        rom.dupe_type = DupeType.EXTERNAL | DupeType.HASH
        rom.remove = True

        restored = item_from_dict(json.loads(json.dumps(rom.to_dict())))

        assert isinstance(restored, Rom)
        assert restored.to_dict() == rom.to_dict()
        assert restored.status == ItemStatus.VERIFIED
        assert restored.machine.machine_type == MachineType.BIOS | MachineType.DEVICE
        assert DupeType.EXTERNAL in restored.dupe_type

    def test_nested_items_are_rebuilt(self):
        config = Configuration(
            name="cfg", tag="tag", mask="3",
            conditions=[Condition(tag="a", mask="1", relation="eq", value="1")],
            settings=[Setting(name="on", value="1", conditions=[Condition(tag="b")])],
        )

        restored = item_from_dict(json.loads(json.dumps(config.to_dict())))

        assert isinstance(restored, Configuration)
        assert isinstance(restored.settings[0], Setting)
        assert isinstance(restored.settings[0].conditions[0], Condition)
        assert restored.equals(config)
