"""Translation between ASCII (ISO-8859-1) and EBCDIC code page 1047."""

from __future__ import annotations

_ASCII_TO_EBCDIC = bytes.fromhex(
    "00010203372D2E2F1605150B0C0D0E0F101112133C3D322618193F271C1D1E1F"
    "405A7F7B5B6C507D4D5D5C4E6B604B61F0F1F2F3F4F5F6F7F8F97A5E4C7E6E6F"
    "7CC1C2C3C4C5C6C7C8C9D1D2D3D4D5D6D7D8D9E2E3E4E5E6E7E8E9ADE0BD5F6D"
    "79818283848586878889919293949596979899A2A3A4A5A6A7A8A9C04FD0A107"
    "202122232425061728292A2B2C090A1B30311A333435360838393A3B04143EFF"
    "41AA4AB19FB26AB5BBB49A8AB0CAAFBC908FEAFABEA0B6B39DDA9B8BB7B8B9AB"
    "6465626663679E687471727378757677AC69EDEEEBEFECBF80FDFEFBFCBAAE59"
    "4445424643479C485451525358555657 8C49CDCECBCFCCE170DDDEDBDC8D8EDF"
)

_EBCDIC_TO_ASCII = bytes.fromhex(
    "000102039C09867F978D8E0B0C0D0E0F101112139D0A08871819928F1C1D1E1F"
    "808182838485171B88898A8B8C050607909116939495960498999A9B14159E1A"
    "20A0E2E4E0E1E3E5E7F1A22E3C282B7C26E9EAEBE8EDEEEFECDF21242A293B5E"
    "2D2FC2C4C0C1C3C5C7D1A62C255F3E3FF8C9CACBC8CDCECFCC603A2340273D22"
    "D8616263646566676869ABBBF0FDFEB1B06A6B6C6D6E6F707172AABAE6B8C6A4"
    "B57E737475767778797AA1BFD05BDEAEACA3A5B7A9A7B6BCBDBEDDA8AF5DB4D7"
    "7B414243444546474849ADF4F6F2F3F57D4A4B4C4D4E4F505152B9FBFCF9FAFF"
    "5CF7535455565758595AB2D4D6D2D3D5303132333435363738 39B3DBDCD9DA9F"
)


def ascii_to_ebcdic(data: bytes | bytearray | memoryview) -> bytes:
    """Translate ASCII bytes to EBCDIC (code page 1047)."""
    return bytes(data).translate(_ASCII_TO_EBCDIC)


def ebcdic_to_ascii(data: bytes | bytearray | memoryview) -> bytes:
    """Translate EBCDIC (code page 1047) bytes to ASCII."""
    return bytes(data).translate(_EBCDIC_TO_ASCII)