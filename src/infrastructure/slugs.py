"""Entry slug de-duplication shared by the stores."""

from collections.abc import Iterable


def unique_slug(base: str, taken: Iterable[str | None]) -> str:
    """Return ``base`` or the first free ``base-N`` (N = 1, 2, ...).

    Examples:
        >>> unique_slug("lamp", ["lamp", "lamp-1"])
        'lamp-2'
    """
    used = {slug for slug in taken if slug}
    slug = base
    counter = 1
    while slug in used:
        slug = f"{base}-{counter}"
        counter += 1
    return slug
