"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Canonical item model for DAT catalogs.

Every parser hands the catalog a stream of DatItem variants, each carrying its own
Machine and Source. Variants are a closed set registered against ItemType; the
registry drives cloning, (de)serialization and the exhaustiveness check at import.
"""

import copy
from dataclasses import dataclass, field, fields
from enum import Enum, Flag
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar


KEY_SEPARATOR = "|"


# =============================
# Enums
# =============================

class ItemType(Enum):
    """
    Variant kinds of catalog items.
    Declaration order is the canonical sort order inside a bucket.
    """
    ROM = "rom"
    DISK = "disk"
    MEDIA = "media"
    ADJUSTER = "adjuster"
    ANALOG = "analog"
    ARCHIVE = "archive"
    BIOS_SET = "biosset"
    CHIP = "chip"
    CONDITION = "condition"
    CONFIGURATION = "configuration"
    CONTROL = "control"
    DATA_AREA = "dataarea"
    DEVICE = "device"
    DEVICE_REFERENCE = "device_ref"
    DIP_SWITCH = "dipswitch"
    DISPLAY = "display"
    DRIVER = "driver"
    EXTENSION = "extension"
    INFO = "info"
    INSTANCE = "instance"
    LOCATION = "location"
    PART = "part"
    PORT = "port"
    RAM_OPTION = "ramoption"
    RELEASE = "release"
    SAMPLE = "sample"
    SETTING = "setting"
    SHARED_FEATURE = "sharedfeat"
    SOFTWARE_LIST = "softwarelist"
    SOUND = "sound"
    BLANK = "blank"

    @property
    def sort_index(self) -> int:
        return _ITEM_TYPE_ORDER[self]

    @property
    def is_hash_bearing(self) -> bool:
        return self in (ItemType.ROM, ItemType.DISK, ItemType.MEDIA)

    def __repr__(self) -> str:
        return self.value


_ITEM_TYPE_ORDER = {item_type: index for index, item_type in enumerate(ItemType)}


class ItemStatus(Enum):
    BAD_DUMP = "baddump"
    GOOD = "good"
    NODUMP = "nodump"
    VERIFIED = "verified"


class DupeType(Flag):
    """
    Relationship of a merged duplicate to its survivor.
    INTERNAL/EXTERNAL: same or different source file.
    ALL/HASH: same machine and name, or matched on hashes only.
    """
    NONE = 0
    INTERNAL = 1
    EXTERNAL = 2
    ALL = 4
    HASH = 8


class MachineType(Flag):
    NONE = 0
    BIOS = 1
    DEVICE = 2
    MECHANICAL = 4


class HashType(Enum):
    """Hash fields an item can carry; the value is the attribute name."""
    CRC = "crc"
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"
    SPAMSUM = "spamsum"

    @classmethod
    def exact_tiers(cls) -> List["HashType"]:
        """Exact-match hash tiers, weakest to strongest. SpamSum is fuzzy and excluded."""
        return [cls.CRC, cls.MD5, cls.SHA1, cls.SHA256, cls.SHA384, cls.SHA512]


class ItemKey(Enum):
    """How items are bucketed."""
    NULL = "null"
    MACHINE = "machine"
    CRC = "crc"
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"
    SPAMSUM = "spamsum"

    @property
    def hash_type(self) -> Optional[HashType]:
        """The hash field this key groups on, None for NULL and MACHINE."""
        if self in (ItemKey.NULL, ItemKey.MACHINE):
            return None
        return HashType(self.value)

    @property
    def display_name(self) -> str:
        mapping = {
            ItemKey.NULL: "Unchanged",
            ItemKey.MACHINE: "Machine",
            ItemKey.CRC: "CRC32",
            ItemKey.SPAMSUM: "SpamSum",
        }
        return mapping.get(self, self.value.upper())

    def __repr__(self) -> str:
        return self.value


class MergeMode(Enum):
    """
    Deduplication mode applied after bucketing.
    """
    NONE = "none"
    GAME = "game"
    FULL = "full"

    @property
    def description(self) -> str:
        mapping = {
            MergeMode.NONE: "Sort buckets only, keep every item",
            MergeMode.GAME: "Merge duplicates inside the same machine",
            MergeMode.FULL: "Merge duplicates wherever they are found",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


# ======================
#  Machine / Source / Header
# ======================

@dataclass
class Machine:
    """
    Logical unit (game or software title) owning catalog items.
    clone_of/rom_of/sample_of are name links used for lookup only.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    year: Optional[str] = None
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    clone_of: Optional[str] = None
    rom_of: Optional[str] = None
    sample_of: Optional[str] = None
    machine_type: MachineType = MachineType.NONE

    def clone(self) -> "Machine":
        return copy.copy(self)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["machine_type"] = self.machine_type.value
        return data

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "Machine":
        if not data:
            return Machine()
        data = dict(data)
        data["machine_type"] = MachineType(data.get("machine_type", 0))
        return Machine(**data)


@dataclass
class Source:
    """Provenance of an item: index and name of the catalog file it was parsed from."""
    index: int = 0
    name: Optional[str] = None

    def clone(self) -> "Source":
        return copy.copy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "name": self.name}

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "Source":
        if not data:
            return Source()
        return Source(index=data.get("index", 0), name=data.get("name"))


@dataclass
class Header:
    """Free-form catalog header as reported by the parser."""
    file_name: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    @property
    def is_superdat(self) -> bool:
        return self.type == "SuperDAT"


# ======================
#  Variant registry
# ======================

ITEM_REGISTRY: Dict[ItemType, Type["DatItem"]] = {}

T = TypeVar("T", bound="DatItem")


def register_item(item_type: ItemType) -> Callable[[Type[T]], Type[T]]:
    """Class decorator binding a DatItem subclass to its ItemType."""
    def decorator(cls: Type[T]) -> Type[T]:
        if item_type in ITEM_REGISTRY:
            raise ValueError(f"Item type '{item_type.value}' is already registered")
        cls.item_type = item_type
        ITEM_REGISTRY[item_type] = cls
        return cls
    return decorator


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and not value)


def _same_members(left: Optional[List["DatItem"]], right: Optional[List["DatItem"]]) -> bool:
    """Order-independent containment both ways; None and [] are the same empty set."""
    left = left or []
    right = right or []
    return (all(any(a.equals(b) for b in right) for a in left)
            and all(any(b.equals(a) for a in left) for b in right))


# ======================
#  Core Data Models
# ======================

@dataclass(eq=False)
class DatItem:
    """
    Base class of every catalog item.

    Subclasses list the attributes that make up their identity in `identity_fields`
    and their nested list attributes (compared as sets) in `set_fields`.
    """
    item_type: ClassVar[ItemType]
    identity_fields: ClassVar[Tuple[str, ...]] = ("name",)
    set_fields: ClassVar[Tuple[str, ...]] = ()

    name: Optional[str] = None
    machine: Machine = field(default_factory=Machine)
    source: Source = field(default_factory=Source)
    remove: bool = False
    dupe_type: DupeType = DupeType.NONE

    # ----- equality -----

    def equals(self, other: Optional["DatItem"]) -> bool:
        """
        Item equality contract: same variant kind and matching identity.
        An item is always equal to itself; absent hashes never match.
        """
        if other is None or self.item_type != other.item_type:
            return False
        if self is other:
            return True
        return self._fields_match(other)

    def _fields_match(self, other: "DatItem") -> bool:
        for name in self.identity_fields:
            if getattr(self, name) != getattr(other, name):
                return False
        for name in self.set_fields:
            if not _same_members(getattr(self, name), getattr(other, name)):
                return False
        return True

    # ----- hashes and keys -----

    def get_hash(self, hash_type: Optional[HashType]) -> Optional[str]:
        """Returns the hash of the given type, None when absent or not carried."""
        return None

    def get_key(self, mode: ItemKey, normalize_case: bool = True, ignore_source_context: bool = True) -> str:
        """
        Bucket key for this item under the given bucketing mode.
        Hash modes fall back to a name-based key when the hash is absent.
        """
        if mode == ItemKey.NULL:
            return ""

        if mode == ItemKey.MACHINE:
            machine_name = self.machine.name or ""
            if ignore_source_context:
                return machine_name
            return f"{machine_name}{KEY_SEPARATOR}{self.source.index}"

        value = self.get_hash(mode.hash_type)
        if value:
            return value.lower() if normalize_case else value
        return self._fallback_key()

    def _fallback_key(self) -> str:
        parts = [self.name or self.machine.name or ""]
        size = getattr(self, "size", None)
        if size is not None:
            parts.append(str(size))
        return "-".join(parts)

    # ----- copying and merging -----

    def clone(self: T) -> T:
        """Deep copy; the clone owns its Machine and Source."""
        return copy.deepcopy(self)

    def fill_missing(self, other: "DatItem") -> None:
        """
        Copies attributes that are empty here and populated on `other`.
        Populated attributes are never overwritten (earliest non-null wins).
        """
        if other is None or other.item_type != self.item_type:
            return
        for f in fields(self):
            if f.name in ("machine", "source", "remove", "dupe_type"):
                continue
            if _is_empty(getattr(self, f.name)) and not _is_empty(getattr(other, f.name)):
                setattr(self, f.name, copy.deepcopy(getattr(other, f.name)))

    def get_duplicate_status(self, other: "DatItem") -> DupeType:
        """Classifies `other` as a duplicate of this item."""
        if self.source.index == other.source.index:
            dupe_type = DupeType.INTERNAL
        else:
            dupe_type = DupeType.EXTERNAL

        if self.machine.name == other.machine.name and self.name == other.name:
            return dupe_type | DupeType.ALL
        return dupe_type | DupeType.HASH

    # ----- serialization -----

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.item_type.value}
        for f in fields(self):
            data[f.name] = _encode(getattr(self, f.name))
        return data


def _encode(value: Any) -> Any:
    if isinstance(value, (DatItem, Machine, Source)):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def item_from_dict(data: Dict[str, Any]) -> DatItem:
    """Rebuilds an item from DatItem.to_dict() output."""
    item_type = ItemType(data["type"])
    cls = ITEM_REGISTRY[item_type]
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if f.name == "machine":
            value = Machine.from_dict(value)
        elif f.name == "source":
            value = Source.from_dict(value)
        elif f.name == "dupe_type":
            value = DupeType(value or 0)
        elif f.name == "status":
            value = ItemStatus(value) if value is not None else None
        elif f.name in cls.set_fields:
            value = [item_from_dict(v) for v in value] if value is not None else []
        kwargs[f.name] = value
    return cls(**kwargs)


@dataclass(eq=False)
class HashedItem(DatItem):
    """
    Base for hash-bearing variants (Rom, Disk, Media).
    Equality is driven by hashes: every hash present on both sides must match
    and at least one must be shared.
    """
    hash_fields: ClassVar[Tuple[HashType, ...]] = ()

    status: Optional[ItemStatus] = None

    def get_hash(self, hash_type: Optional[HashType]) -> Optional[str]:
        if hash_type not in self.hash_fields:
            return None
        return getattr(self, hash_type.value) or None

    def has_hashes(self) -> bool:
        return any(self.get_hash(t) for t in HashType.exact_tiers())

    def _fields_match(self, other: "DatItem") -> bool:
        shared = False
        for hash_type in HashType.exact_tiers():
            mine = self.get_hash(hash_type)
            theirs = other.get_hash(hash_type)
            if mine and theirs:
                if mine.lower() != theirs.lower():
                    return False
                shared = True
        return shared


# =============================
# Hash-bearing variants
# =============================

@register_item(ItemType.ROM)
@dataclass(eq=False)
class Rom(HashedItem):
    hash_fields: ClassVar[Tuple[HashType, ...]] = tuple(HashType)

    size: Optional[int] = None
    crc: Optional[str] = None
    md5: Optional[str] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
    sha384: Optional[str] = None
    sha512: Optional[str] = None
    spamsum: Optional[str] = None
    bios: Optional[str] = None
    date: Optional[str] = None
    merge_tag: Optional[str] = None
    region: Optional[str] = None
    offset: Optional[str] = None
    optional: Optional[bool] = None
    inverted: Optional[bool] = None

    def _fields_match(self, other: "DatItem") -> bool:
        if self.size is not None and other.size is not None and self.size != other.size:
            return False
        return super()._fields_match(other)


@register_item(ItemType.DISK)
@dataclass(eq=False)
class Disk(HashedItem):
    hash_fields: ClassVar[Tuple[HashType, ...]] = (HashType.MD5, HashType.SHA1)

    md5: Optional[str] = None
    sha1: Optional[str] = None
    merge_tag: Optional[str] = None
    region: Optional[str] = None
    optional: Optional[bool] = None


@register_item(ItemType.MEDIA)
@dataclass(eq=False)
class Media(HashedItem):
    hash_fields: ClassVar[Tuple[HashType, ...]] = (
        HashType.MD5, HashType.SHA1, HashType.SHA256, HashType.SPAMSUM)

    md5: Optional[str] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
    spamsum: Optional[str] = None


# =============================
# Descriptive variants
# =============================

@register_item(ItemType.CONDITION)
@dataclass(eq=False)
class Condition(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("tag", "mask", "relation", "value")

    tag: Optional[str] = None
    mask: Optional[str] = None
    relation: Optional[str] = None
    value: Optional[str] = None


@register_item(ItemType.LOCATION)
@dataclass(eq=False)
class Location(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "number", "inverted")

    number: Optional[int] = None
    inverted: Optional[bool] = None


@register_item(ItemType.SETTING)
@dataclass(eq=False)
class Setting(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "value", "default")
    set_fields: ClassVar[Tuple[str, ...]] = ("conditions",)

    value: Optional[str] = None
    default: Optional[bool] = None
    conditions: List[Condition] = field(default_factory=list)


@register_item(ItemType.ADJUSTER)
@dataclass(eq=False)
class Adjuster(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "default")
    set_fields: ClassVar[Tuple[str, ...]] = ("conditions",)

    default: Optional[bool] = None
    conditions: List[Condition] = field(default_factory=list)


@register_item(ItemType.ANALOG)
@dataclass(eq=False)
class Analog(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("mask",)

    mask: Optional[str] = None


@register_item(ItemType.ARCHIVE)
@dataclass(eq=False)
class Archive(DatItem):
    pass


@register_item(ItemType.BIOS_SET)
@dataclass(eq=False)
class BiosSet(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "description", "default")

    description: Optional[str] = None
    default: Optional[bool] = None


@register_item(ItemType.BLANK)
@dataclass(eq=False)
class Blank(DatItem):
    """Placeholder keeping a machine without content items in the catalog."""
    identity_fields: ClassVar[Tuple[str, ...]] = ()

    def _fields_match(self, other: "DatItem") -> bool:
        return (self.machine.name == other.machine.name
                and self.source.index == other.source.index)


@register_item(ItemType.CHIP)
@dataclass(eq=False)
class Chip(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "tag", "chip_type", "clock")

    tag: Optional[str] = None
    chip_type: Optional[str] = None
    clock: Optional[int] = None


@register_item(ItemType.CONFIGURATION)
@dataclass(eq=False)
class Configuration(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "tag", "mask")
    set_fields: ClassVar[Tuple[str, ...]] = ("conditions", "locations", "settings")

    tag: Optional[str] = None
    mask: Optional[str] = None
    conditions: List[Condition] = field(default_factory=list)
    locations: List[Location] = field(default_factory=list)
    settings: List[Setting] = field(default_factory=list)


@register_item(ItemType.CONTROL)
@dataclass(eq=False)
class Control(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = (
        "control_type", "player", "buttons", "required_buttons", "minimum", "maximum",
        "sensitivity", "key_delta", "reverse", "ways", "ways2", "ways3")

    control_type: Optional[str] = None
    player: Optional[int] = None
    buttons: Optional[int] = None
    required_buttons: Optional[int] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    sensitivity: Optional[int] = None
    key_delta: Optional[int] = None
    reverse: Optional[bool] = None
    ways: Optional[str] = None
    ways2: Optional[str] = None
    ways3: Optional[str] = None


@register_item(ItemType.DATA_AREA)
@dataclass(eq=False)
class DataArea(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "size", "width", "endianness")

    size: Optional[int] = None
    width: Optional[int] = None
    endianness: Optional[str] = None


@register_item(ItemType.INSTANCE)
@dataclass(eq=False)
class Instance(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "brief_name")

    brief_name: Optional[str] = None


@register_item(ItemType.EXTENSION)
@dataclass(eq=False)
class Extension(DatItem):
    pass


@register_item(ItemType.DEVICE)
@dataclass(eq=False)
class Device(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = (
        "device_type", "tag", "fixed_image", "mandatory", "interface")
    set_fields: ClassVar[Tuple[str, ...]] = ("instances", "extensions")

    device_type: Optional[str] = None
    tag: Optional[str] = None
    fixed_image: Optional[str] = None
    mandatory: Optional[int] = None
    interface: Optional[str] = None
    instances: List[Instance] = field(default_factory=list)
    extensions: List[Extension] = field(default_factory=list)


@register_item(ItemType.DEVICE_REFERENCE)
@dataclass(eq=False)
class DeviceReference(DatItem):
    pass


@register_item(ItemType.DIP_SWITCH)
@dataclass(eq=False)
class DipSwitch(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "tag", "mask")
    set_fields: ClassVar[Tuple[str, ...]] = ("conditions", "locations", "values")

    tag: Optional[str] = None
    mask: Optional[str] = None
    conditions: List[Condition] = field(default_factory=list)
    locations: List[Location] = field(default_factory=list)
    values: List[Setting] = field(default_factory=list)


@register_item(ItemType.DISPLAY)
@dataclass(eq=False)
class Display(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = (
        "tag", "display_type", "rotate", "flip_x", "width", "height", "refresh")

    tag: Optional[str] = None
    display_type: Optional[str] = None
    rotate: Optional[int] = None
    flip_x: Optional[bool] = None
    width: Optional[int] = None
    height: Optional[int] = None
    refresh: Optional[float] = None


@register_item(ItemType.DRIVER)
@dataclass(eq=False)
class Driver(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = (
        "driver_status", "emulation", "cocktail", "save_state")

    driver_status: Optional[str] = None
    emulation: Optional[str] = None
    cocktail: Optional[str] = None
    save_state: Optional[str] = None


@register_item(ItemType.INFO)
@dataclass(eq=False)
class Info(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "value")

    value: Optional[str] = None


@register_item(ItemType.PART)
@dataclass(eq=False)
class Part(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "interface")

    interface: Optional[str] = None


@register_item(ItemType.PORT)
@dataclass(eq=False)
class Port(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("tag",)
    set_fields: ClassVar[Tuple[str, ...]] = ("analogs",)

    tag: Optional[str] = None
    analogs: List[Analog] = field(default_factory=list)


@register_item(ItemType.RAM_OPTION)
@dataclass(eq=False)
class RamOption(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "default", "content")

    default: Optional[bool] = None
    content: Optional[str] = None


@register_item(ItemType.RELEASE)
@dataclass(eq=False)
class Release(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "region", "language", "date", "default")

    region: Optional[str] = None
    language: Optional[str] = None
    date: Optional[str] = None
    default: Optional[bool] = None


@register_item(ItemType.SAMPLE)
@dataclass(eq=False)
class Sample(DatItem):
    pass


@register_item(ItemType.SHARED_FEATURE)
@dataclass(eq=False)
class SharedFeature(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "value")

    value: Optional[str] = None


@register_item(ItemType.SOFTWARE_LIST)
@dataclass(eq=False)
class SoftwareList(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "list_status", "filter")

    list_status: Optional[str] = None
    filter: Optional[str] = None


@register_item(ItemType.SOUND)
@dataclass(eq=False)
class Sound(DatItem):
    identity_fields: ClassVar[Tuple[str, ...]] = ("channels",)

    channels: Optional[int] = None


_UNREGISTERED = [t.value for t in ItemType if t not in ITEM_REGISTRY]
if _UNREGISTERED:
    raise RuntimeError(f"Item types without a registered class: {', '.join(_UNREGISTERED)}")


# =============================
# Helpers
# =============================

def items_equal(left: Optional[DatItem], right: Optional[DatItem]) -> bool:
    """Null-safe form of DatItem.equals."""
    if left is None or right is None:
        return False
    return left.equals(right)


def blank_item(machine: Machine, source: Source) -> Blank:
    """Synthetic item for a machine that declares no content items."""
    return Blank(machine=machine.clone(), source=source.clone())
