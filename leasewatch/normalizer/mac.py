import re

_HEX12 = re.compile(r"^[0-9a-f]{12}$")


def canonical_mac(value: str) -> str:
    """
    Приводит MAC к единому виду: aa:bb:cc:dd:ee:ff.
    Принимает aa-bb-cc-dd-ee-ff, AABB.CCDD.EEFF, aabbccddeeff и смешанный регистр.
    Все словари по MAC строятся только через эту функцию.
    """
    if value is None:
        raise ValueError("MAC address is missing")

    mac_clean = value.strip().replace("-", "").replace(":", "").replace(".", "").lower()
    if not _HEX12.match(mac_clean):
        raise ValueError(f"invalid MAC address: {value!r}")

    return ":".join(mac_clean[i:i + 2] for i in range(0, 12, 2))


def same_mac(a: str, b: str) -> bool:
    try:
        return canonical_mac(a) == canonical_mac(b)
    except ValueError:
        return False
