from datcatalog.core.models import ItemKey, MergeMode

ITEM_KEY_ALIASES = {
    "none": ItemKey.NULL,
    "null": ItemKey.NULL,
    "machine": ItemKey.MACHINE,
    "game": ItemKey.MACHINE,
    "crc": ItemKey.CRC,
    "crc32": ItemKey.CRC,
    "md5": ItemKey.MD5,
    "sha1": ItemKey.SHA1,
    "sha256": ItemKey.SHA256,
    "sha384": ItemKey.SHA384,
    "sha512": ItemKey.SHA512,
    "spamsum": ItemKey.SPAMSUM,
}

ITEM_KEY_CHOICES = list(ITEM_KEY_ALIASES.keys())

MERGE_MODE_ALIASES = {
    "none": MergeMode.NONE,
    "game": MergeMode.GAME,
    "machine": MergeMode.GAME,
    "full": MergeMode.FULL,
    "all": MergeMode.FULL,
}

MERGE_MODE_CHOICES = list(MERGE_MODE_ALIASES.keys())


def resolve_item_key(value) -> ItemKey:
    """Accepts an ItemKey or one of ITEM_KEY_CHOICES (case-insensitive)."""
    if isinstance(value, ItemKey):
        return value
    try:
        return ITEM_KEY_ALIASES[str(value).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown bucketing mode '{value}'. Choose from: {', '.join(ITEM_KEY_CHOICES)}")


def resolve_merge_mode(value) -> MergeMode:
    """Accepts a MergeMode or one of MERGE_MODE_CHOICES (case-insensitive)."""
    if isinstance(value, MergeMode):
        return value
    try:
        return MERGE_MODE_ALIASES[str(value).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown merge mode '{value}'. Choose from: {', '.join(MERGE_MODE_CHOICES)}")
