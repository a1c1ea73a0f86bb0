"""Conversion between Bilibili numeric av ids and BV ids.

Multi-part video playlists store the numeric aid as remote_sync_id; the API wants
the bvid. Standard 58-character alphabet with XOR/mask scrambling and two swaps.
"""

from bbsync.domain.exceptions import ValidationError

XOR_CODE = 23442827791579
MASK_CODE = 2251799813685247
MAX_AID = 1 << 51
BASE = 58
ALPHABET = "FcwAPNKTMug3GV5Lj7EJnHpWsx4tb8haYeviqBz6rkCy12mUSDQX9RdoZf"
BVID_LENGTH = 12

_ALPHABET_INDEX = {char: index for index, char in enumerate(ALPHABET)}


def _swap(chars: list[str]) -> None:
    chars[3], chars[9] = chars[9], chars[3]
    chars[4], chars[7] = chars[7], chars[4]


def av2bv(aid: int) -> str:
    """Convert a numeric av id to its bvid.

    Raises:
        ValidationError: aid is not a positive integer below 2**51
    """
    if aid <= 0 or aid >= MAX_AID:
        raise ValidationError(f"Invalid aid: {aid}")

    chars = list("BV1000000000")
    tmp = (aid | MAX_AID) ^ XOR_CODE
    for index in range(BVID_LENGTH - 1, 2, -1):
        chars[index] = ALPHABET[tmp % BASE]
        tmp //= BASE
    _swap(chars)
    return "".join(chars)


def bv2av(bvid: str) -> int:
    """Convert a bvid to its numeric av id.

    Raises:
        ValidationError: bvid is malformed
    """
    if len(bvid) != BVID_LENGTH or bvid[:2].upper() != "BV":
        raise ValidationError(f"Invalid bvid: {bvid}")

    chars = list(bvid)
    _swap(chars)
    tmp = 0
    for char in chars[3:]:
        index = _ALPHABET_INDEX.get(char)
        if index is None:
            raise ValidationError(f"Invalid bvid: {bvid}")
        tmp = tmp * BASE + index
    return (tmp & MASK_CODE) ^ XOR_CODE
