#!/usr/bin/python3
# encoding: utf-8
# SPDX-FileCopyrightText: 2024 FC (Fay) Stegerman <flx@obfusk.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""
patch & re-sign android apks

apkrepack replaces a set of entries in an existing (signed or unsigned) APK
with new contents and re-signs the result with apksigner, selecting the
signature schemes (v1, v2, v3, v4) from the minimum SDK version the APK has to
install on.

Entries that are not replaced are copied verbatim: their (possibly compressed)
data, local file headers, and central directory records are never recomputed,
so STORED entries keep their exact size and CRC-32.


CLI
===

$ apkrepack patch [OPTIONS] SOURCE_APK OUTPUT_APK
$ apkrepack sign [OPTIONS] INPUT_APK OUTPUT_APK
$ apkrepack build [OPTIONS] SOURCE_APK OUTPUT_APK
$ apkrepack schemes [OPTIONS] MIN_SDK_VERSION

The following environment variables can be set to 1, yes, or true to
override the default behaviour:

* set APKREPACK_EXCLUDE_ALL_META=1 to exclude all (v1 signature) metadata files
* set APKREPACK_SKIP_REALIGNMENT=1 to skip realignment of ZIP entries
* set APKREPACK_ENABLE_V4_SIGNING=1 to enable v4 signing (where supported)


API
===

>> from apkrepack import patch_apk, do_build
>> from apkrepack.signer import load_identity, select_schemes, sign_apk
>> patch_apk(source_apk, unsigned_apk, {"assets/config.json": b"{}"})
>> sign_apk(unsigned_apk, output_apk, load_identity(keystore_dir), min_sdk_version=21)
>> do_build(source_apk, output_apk, keystore_dir, 21, replacements={...})

The following global variables (which default to False), can be set to
override the default behaviour:

* set exclude_all_meta=True to exclude all (v1 signature) metadata files
* set skip_realignment=True to skip realignment of ZIP entries
* set apkrepack.signer.enable_v4_signing=True to enable v4 signing
"""

import logging
import os
import re
import struct
import sys
import tempfile
import zipfile
import zlib

from collections import namedtuple
from typing import (Any, BinaryIO, Callable, Dict, FrozenSet, Iterable, List, Mapping,
                    Optional, Set, Tuple)

__version__ = "0.1.0"
NAME = "apkrepack"

# NB: JAR signing ignores subdirectories of META-INF but android does not
APK_META = re.compile(r"\AMETA-INF/((?s:.)*\.(SF|RSA|DSA|EC)|MANIFEST\.MF)\Z")

# android 11+ requires resources.arsc to be STORED & 4-byte aligned
STORE_REPLACEMENTS: Tuple[str, ...] = ("resources.arsc",)

COMPRESSLEVEL = 9
DATETIMEZERO = (0, 0)                           # dos time, dos date
ALIGNMENT_EXTRA_ID = 0xd935                     # apksigner/zipalign

# https://en.wikipedia.org/wiki/ZIP_(file_format)
LFH_SIG = b"\x50\x4b\x03\x04"
CDFH_SIG = b"\x50\x4b\x01\x02"
EOCD_SIG = b"\x50\x4b\x05\x06"
DD_SIG = b"\x50\x4b\x07\x08"

VERSION_CREATED = 20                            # fat, 2.0
VERSION_EXTRACT = 20                            # 2.0
FLAG_UTF8 = 0x800

ZipData = namedtuple("ZipData", ("cd_offset", "eocd_offset", "cd_and_eocd"))
PatchResult = namedtuple("PatchResult", ("copied", "replaced", "added", "skipped_directories",
                                         "skipped_duplicates", "excluded"))

exclude_all_meta = False    # exclude all metadata files in patch_apk()
skip_realignment = False    # skip realignment of ZIP entries in patch_apk()

log = logging.getLogger(__name__)


class APKRepackError(Exception):
    """Base class for errors."""


class MalformedArchiveError(APKRepackError):
    """Something wrong with the (source) ZIP file."""


class KeyLoadError(APKRepackError):
    """Unreadable or malformed private key or certificate file."""


class CertificateFormatError(KeyLoadError):
    """No extractable certificate."""


class SigningError(APKRepackError):
    """Signing failed."""


def is_meta(filename: str) -> bool:
    r"""
    Returns whether filename is a v1 (JAR) signature file (.SF), signature block
    file (.RSA, .DSA, or .EC), or manifest (MANIFEST.MF).

    >>> is_meta("classes.dex")
    False
    >>> is_meta("META-INF/CERT.SF")
    True
    >>> is_meta("META-INF/CERT.RSA")
    True
    >>> is_meta("META-INF/MANIFEST.MF")
    True
    >>> is_meta("META-INF/services/foo")
    False
    >>> is_meta("META-INF/oops/CERT.RSA")
    True

    """
    return bool(APK_META.fullmatch(filename))


def exclude_from_copying(filename: str) -> bool:
    r"""
    Returns whether to exclude a file during patch_apk().

    Excludes nothing but directories by default; when exclude_all_meta is set to
    True instead, excludes all metadata files as matched by is_meta() as well.

    >>> exclude_from_copying("classes.dex")
    False
    >>> exclude_from_copying("res/")
    True
    >>> exclude_from_copying("META-INF/MANIFEST.MF")
    False

    >>> import apkrepack
    >>> apkrepack.exclude_all_meta = True
    >>> apkrepack.exclude_from_copying("META-INF/MANIFEST.MF")
    True
    >>> apkrepack.exclude_from_copying("META-INF/CERT.SF")
    True
    >>> apkrepack.exclude_from_copying("classes.dex")
    False
    >>> apkrepack.exclude_all_meta = False

    """
    return exclude_meta(filename) if exclude_all_meta else exclude_default(filename)


def exclude_default(filename: str) -> bool:
    """Like exclude_from_copying(); excludes directories only."""
    return is_directory(filename)


def exclude_meta(filename: str) -> bool:
    """Like exclude_from_copying(); excludes directories and all metadata files."""
    return is_directory(filename) or is_meta(filename)


def is_directory(filename: str) -> bool:
    """ZIP entries with filenames that end with a '/' are directories."""
    return filename.endswith("/")


def store_replacement(filename: str) -> bool:
    """
    Returns whether a replacement entry is written STORED (instead of DEFLATED).

    >>> store_replacement("resources.arsc")
    True
    >>> store_replacement("res/values/strings.xml")
    False

    """
    return filename in STORE_REPLACEMENTS


def alignment(filename: str) -> int:
    """Alignment of STORED entry data: 4096 bytes for .so files, 4 otherwise."""
    return 4096 if filename.endswith(".so") else 4


# FIXME: support zip64?
# https://android.googlesource.com/platform/tools/apksig
#   src/main/java/com/android/apksig/ApkSigner.java
def patch_apk(source_apk: str, output_apk: str, replacements: Mapping[str, bytes], *,
              exclude: Optional[Callable[[str], bool]] = None,
              realign: Optional[bool] = None,
              stored: Optional[Callable[[str], bool]] = None) -> PatchResult:
    r"""
    Copy source_apk to output_apk, replacing (or adding) the entries in
    replacements; returns a PatchResult.

    Entries are copied in the order of their local file headers; replaced
    entries, directories, entries matched by exclude, and all but the first of
    any entries with the same name are skipped.  The replacements are then
    appended as new entries: STORED if stored(filename) is True, DEFLATED
    otherwise.  Any extra bytes before the central directory (e.g. an APK
    Signing Block) are dropped.

    The following global variables (which default to False), can be set to
    override the default behaviour:

    * set exclude_all_meta=True to exclude all metadata files
    * set skip_realignment=True to skip realignment of ZIP entries

    The keyword-only arguments exclude and realign take precedence over the
    global variables when not None.  NB: exclude is a callable, not a bool;
    realign is the inverse of skip_realignment.

    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     src = os.path.join(tmpdir, "in.apk")
    ...     out = os.path.join(tmpdir, "out.apk")
    ...     with zipfile.ZipFile(src, "w") as zf:
    ...         zf.writestr("res/", b"")
    ...         zf.writestr("AndroidManifest.xml", b"<manifest/>", zipfile.ZIP_DEFLATED)
    ...         zf.writestr("classes.dex", b"dex\n035\x00", zipfile.ZIP_STORED)
    ...     result = patch_apk(src, out, {"AndroidManifest.xml": b"<manifest package='x'/>"})
    ...     with zipfile.ZipFile(out, "r") as zf:
    ...         names = zf.namelist()
    ...         data = zf.read("AndroidManifest.xml")
    ...         dex = zf.getinfo("classes.dex")
    >>> names
    ['classes.dex', 'AndroidManifest.xml']
    >>> data
    b"<manifest package='x'/>"
    >>> dex.compress_type == zipfile.ZIP_STORED, dex.file_size, dex.CRC == zlib.crc32(b"dex\n035\x00")
    (True, 8, True)
    >>> result.copied, result.replaced, result.added
    (('classes.dex',), ('AndroidManifest.xml',), ())
    >>> result.skipped_directories
    ('res/',)

    """
    if exclude is None:
        exclude = exclude_from_copying
    if realign is None:
        realign = not skip_realignment
    if stored is None:
        stored = store_replacement
    if os.path.exists(output_apk) and os.path.samefile(source_apk, output_apk):
        raise APKRepackError(f"Refusing to overwrite source APK {source_apk!r}")
    try:
        with zipfile.ZipFile(source_apk, "r") as zf:
            infos = zf.infolist()
    except zipfile.BadZipFile as e:
        raise MalformedArchiveError(f"Unreadable ZIP file {source_apk!r}: {e}")   # pylint: disable=W0707
    zdata = zip_data(source_apk)
    offsets: Dict[int, int] = {}
    written: Set[str] = set()
    copied: List[str] = []
    replaced: List[str] = []
    skipped_dirs: List[str] = []
    skipped_dups: List[str] = []
    excluded: List[str] = []
    with open(source_apk, "rb") as fhi, open(output_apk, "wb") as fho:
        for idx, info in sorted(enumerate(infos), key=lambda x: x[1].header_offset):
            filename = info.orig_filename
            if filename in replacements:
                log.debug("Replacing %r", filename)
                if filename not in replaced:
                    replaced.append(filename)
                continue
            if is_directory(filename):
                log.info("Skipping directory entry %r", filename)
                skipped_dirs.append(filename)
                continue
            if exclude(filename):
                log.debug("Excluding %r", filename)
                excluded.append(filename)
                continue
            if filename in written:
                log.warning("Skipping duplicate ZIP entry %r", filename)
                skipped_dups.append(filename)
                continue
            fhi.seek(info.header_offset)
            hdr, n, m = _read_lfh(fhi)
            off_o = fho.tell()
            if realign and info.compress_type == 0 and off_o != info.header_offset:
                hdr = _realign_zip_entry(info, hdr, n, m, off_o)
            fho.write(hdr)
            _copy_bytes(fhi, fho, info.compress_size)
            if data_descriptor := _read_data_descriptor(fhi, info):
                fho.write(data_descriptor)
            offsets[idx] = off_o
            written.add(filename)
            copied.append(filename)
        new_cdfhs = []
        for filename, data in replacements.items():
            off_o = fho.tell()
            lfh, cdfh = _new_zip_entry(filename, bytes(data), off_o,
                                       store=stored(filename), realign=realign)
            fho.write(lfh)
            new_cdfhs.append(cdfh)
        cd_offset = fho.tell()
        fhi.seek(zdata.cd_offset)
        for idx, _ in enumerate(infos):
            hdr, _, _, _ = _read_cdfh(fhi)
            if idx in offsets:
                fho.write(_adjust_offset(hdr, offsets[idx]))
        for cdfh in new_cdfhs:
            fho.write(cdfh)
        eocd_offset = fho.tell()
        entries = len(offsets) + len(new_cdfhs)
        if entries > 0xffff:
            raise MalformedArchiveError("Too many ZIP entries (zip64 is not supported)")
        fho.write(zdata.cd_and_eocd[zdata.eocd_offset - zdata.cd_offset:])
        fho.seek(eocd_offset + 8)
        fho.write(struct.pack("<HHLL", entries, entries, eocd_offset - cd_offset, cd_offset))
    added = tuple(filename for filename in replacements if filename not in replaced)
    return PatchResult(tuple(copied), tuple(replaced), added, tuple(skipped_dirs),
                       tuple(skipped_dups), tuple(excluded))


def _read_lfh(fh: BinaryIO) -> Tuple[bytes, int, int]:
    hdr = fh.read(30)
    if hdr[:4] != LFH_SIG:
        raise MalformedArchiveError("Expected local file header signature")
    n, m = struct.unpack("<HH", hdr[26:30])
    return hdr + fh.read(n + m), n, m


def _read_cdfh(fh: BinaryIO) -> Tuple[bytes, int, int, int]:
    hdr = fh.read(46)
    if hdr[:4] != CDFH_SIG:
        raise MalformedArchiveError("Expected central directory file header signature")
    n, m, k = struct.unpack("<HHH", hdr[28:34])
    return hdr + fh.read(n + m + k), n, m, k


def _adjust_offset(hdr: bytes, offset: int) -> bytes:
    return hdr[:42] + int.to_bytes(offset, 4, "little") + hdr[46:]


def _read_data_descriptor(fh: BinaryIO, info: zipfile.ZipInfo) -> Optional[bytes]:
    if info.flag_bits & 0x08:
        data_descriptor = fh.read(12)
        if data_descriptor[:4] == DD_SIG:
            data_descriptor += fh.read(4)
        return data_descriptor
    return None


# NB: doesn't sync local & CD headers!
def _realign_zip_entry(info: zipfile.ZipInfo, hdr: bytes, n: int, m: int, off_o: int) -> bytes:
    align = alignment(info.orig_filename)
    old_off = 30 + n + m + info.header_offset
    new_off = 30 + n + m + off_o
    old_xtr = hdr[30 + n:30 + n + m]
    new_xtr = b""
    while len(old_xtr) >= 4:
        hdr_id, size = struct.unpack("<HH", old_xtr[:4])
        if size > len(old_xtr) - 4:
            break
        if not (hdr_id == 0 and size == 0):
            if hdr_id == ALIGNMENT_EXTRA_ID:
                if size >= 2:
                    align = int.from_bytes(old_xtr[4:6], "little")
            else:
                new_xtr += old_xtr[:size + 4]
        old_xtr = old_xtr[size + 4:]
    if old_off % align == 0 and new_off % align != 0:
        xtr = new_xtr + _alignment_extra(off_o + 30 + n + len(new_xtr), align)
        m_b = int.to_bytes(len(xtr), 2, "little")
        hdr = hdr[:28] + m_b + hdr[30:30 + n] + xtr
    return hdr


def _alignment_extra(data_offset: int, align: int) -> bytes:
    """Alignment extra field (like apksigner) for data that would start at data_offset."""
    pad = (align - (data_offset + 6) % align) % align
    return struct.pack("<HHH", ALIGNMENT_EXTRA_ID, 2 + pad, align) + pad * b"\x00"


def _new_zip_entry(filename: str, data: bytes, offset: int, *, store: bool,
                   realign: bool = True) -> Tuple[bytes, bytes]:
    """
    Create a new ZIP entry (LFH + data) and its CDFH.

    Returns (lfh_and_data, cdfh).
    """
    name = filename.encode()
    crc = zlib.crc32(data)
    if store:
        method, compressed = 0, data
        extra = _alignment_extra(offset + 30 + len(name), alignment(filename)) if realign else b""
    else:
        compressor = zlib.compressobj(COMPRESSLEVEL, zlib.DEFLATED, -15)
        method, compressed = 8, compressor.compress(data) + compressor.flush()
        extra = b""
    if len(compressed) > 0xffffffff or len(data) > 0xffffffff:
        raise APKRepackError(f"Replacement too large for {filename!r} (zip64 is not supported)")
    mtime, mdate = DATETIMEZERO
    common = struct.pack("<HHHHIII", FLAG_UTF8, method, mtime, mdate, crc,
                         len(compressed), len(data))
    lfh = (LFH_SIG + struct.pack("<H", VERSION_EXTRACT) + common +
           struct.pack("<HH", len(name), len(extra)) + name + extra)
    cdfh = (CDFH_SIG + struct.pack("<HH", VERSION_CREATED, VERSION_EXTRACT) + common +
            struct.pack("<HHHHHII", len(name), 0, 0, 0, 0, 0, offset) + name)
    return lfh + compressed, cdfh


def _copy_bytes(fhi: BinaryIO, fho: BinaryIO, size: int, blocksize: int = 4096) -> None:
    while size > 0:
        data = fhi.read(min(size, blocksize))
        if not data:
            break
        size -= len(data)
        fho.write(data)
    if size != 0:
        raise MalformedArchiveError("Unexpected EOF")


def zip_data(apkfile: str, count: int = 0xffff + 22) -> ZipData:
    r"""
    Extract central directory, EOCD, and offsets from ZIP.

    Returns ZipData.

    >>> with tempfile.TemporaryDirectory() as tmpdir:
    ...     apk = os.path.join(tmpdir, "test.apk")
    ...     with zipfile.ZipFile(apk, "w") as zf:
    ...         zf.writestr("classes.dex", b"dex\n035\x00", zipfile.ZIP_STORED)
    ...     data = zip_data(apk)
    >>> data.cd_offset, data.eocd_offset
    (49, 106)
    >>> data.cd_and_eocd[data.eocd_offset - data.cd_offset:][:4]
    b'PK\x05\x06'

    """
    with open(apkfile, "rb") as fh:
        return _zip_data(fh, count=min(os.path.getsize(apkfile), count))


def _zip_data(fh: BinaryIO, count: int = 0xffff + 22) -> ZipData:
    fh.seek(-count, os.SEEK_END)
    data = fh.read()
    pos = data.rfind(EOCD_SIG)
    if pos == -1:
        raise MalformedArchiveError("Expected end of central directory record (EOCD)")
    fh.seek(pos - len(data), os.SEEK_CUR)
    eocd_offset = fh.tell()
    fh.seek(12, os.SEEK_CUR)
    cd_size, cd_offset = struct.unpack("<LL", fh.read(8))
    if cd_offset + cd_size > eocd_offset:
        raise MalformedArchiveError("Central directory offset beyond EOCD (zip64 is not supported)")
    # data prepended to the archive (e.g. a stub); offsets are relative to its end
    cd_offset = eocd_offset - cd_size
    fh.seek(cd_offset)
    cd_and_eocd = fh.read()
    return ZipData(cd_offset, eocd_offset, cd_and_eocd)


def read_replacements(pairs: Iterable[Tuple[str, str]]) -> Dict[str, bytes]:
    """Read (entry, file) pairs into a replacements dict; later pairs win."""
    replacements = {}
    for filename, path in pairs:
        with open(path, "rb") as fh:
            replacements[filename] = fh.read()
    return replacements


def do_patch(source_apk: str, output_apk: str, replace: Iterable[Tuple[str, str]] = (), *,
             exclude: Optional[Callable[[str], bool]] = None) -> PatchResult:
    """
    Patch source_apk with the files in replace -- (entry, file) pairs -- and
    save as (unsigned) output_apk.
    """
    result = patch_apk(source_apk, output_apk, read_replacements(replace), exclude=exclude)
    _report(result)
    return result


def do_build(source_apk: str, output_apk: str, keystore_dir: str, min_sdk_version: int, *,
             replace: Iterable[Tuple[str, str]] = (),
             replacements: Optional[Mapping[str, bytes]] = None,
             exclude: Optional[Callable[[str], bool]] = None,
             max_sdk_version: Optional[int] = None, enable_v4: Optional[bool] = None,
             sign_cmd: Optional[Tuple[str, ...]] = None) -> Tuple[PatchResult, FrozenSet[str]]:
    """
    Patch source_apk with replacements and/or the files in replace, sign the
    result using the key store in keystore_dir, and save as output_apk.

    The unsigned intermediate APK lives in a temporary directory that is
    removed whether signing succeeds or not.

    Returns (PatchResult, schemes).
    """
    from .signer import do_sign
    files = {**(replacements or {}), **read_replacements(replace)}
    with tempfile.TemporaryDirectory(prefix=f"{NAME}-") as tmpdir:
        unsigned_apk = os.path.join(tmpdir, "unsigned.apk")
        result = patch_apk(source_apk, unsigned_apk, files, exclude=exclude)
        _report(result)
        schemes = do_sign(unsigned_apk, output_apk, keystore_dir, min_sdk_version,
                          max_sdk_version=max_sdk_version, enable_v4=enable_v4,
                          sign_cmd=sign_cmd)
    return result, schemes


def _report(result: PatchResult) -> None:
    log.info("Copied %d, replaced %d, added %d entries", len(result.copied),
             len(result.replaced), len(result.added))
    if result.skipped_duplicates:
        log.warning("Dropped %d duplicate ZIP entries", len(result.skipped_duplicates))


def _parse_replace(ctx: Any, param: Any, value: Tuple[str, ...]) -> Tuple[Tuple[str, str], ...]:
    import click
    pairs = []
    for item in value:
        filename, sep, path = item.partition("=")
        if not (filename and sep and path):
            raise click.BadParameter(f"expected ENTRY=FILE, got {item!r}", ctx, param)
        if not os.path.isfile(path):
            raise click.BadParameter(f"file {path!r} does not exist", ctx, param)
        pairs.append((filename, path))
    return tuple(pairs)


def main() -> None:
    """CLI; requires click."""

    global exclude_all_meta, skip_realignment
    exclude_all_meta = os.environ.get("APKREPACK_EXCLUDE_ALL_META") in ("1", "yes", "true")
    skip_realignment = os.environ.get("APKREPACK_SKIP_REALIGNMENT") in ("1", "yes", "true")

    import click
    from . import signer

    signer.enable_v4_signing = os.environ.get("APKREPACK_ENABLE_V4_SIGNING") in ("1", "yes", "true")

    def patch_options(f: Callable[..., None]) -> Callable[..., None]:
        f = click.option("--exclude-all-meta", is_flag=True,
                         help="Exclude all (v1 signature) metadata files.")(f)
        f = click.option("--replace", metavar="ENTRY=FILE", multiple=True, callback=_parse_replace,
                         help="Replace (or add) ENTRY with the contents of FILE.")(f)
        return f

    def sign_options(f: Callable[..., None]) -> Callable[..., None]:
        f = click.option("--sign-cmd", metavar="COMMAND", envvar="APKREPACK_SIGN_CMD",
                         help="Command (with arguments) used to sign APKs.  "
                              f"[default: {' '.join(signer.SIGN_CMD)!r}]")(f)
        f = click.option("--v4/--no-v4", "enable_v4", default=None,
                         help="Enable v4 signing (where supported).")(f)
        f = click.option("--max-sdk-version", type=click.INT, help="Passed to apksigner.")(f)
        f = click.option("--min-sdk-version", type=click.INT, required=True,
                         help="Minimum SDK version the APK must install on.")(f)
        f = click.option("--keystore-dir", required=True, envvar="APKREPACK_KEYSTORE_DIR",
                         type=click.Path(exists=True, file_okay=False),
                         help=f"Directory containing {signer.KEY_FILE} and {signer.CERT_FILE}.")(f)
        return f

    def exclude_for(kwargs: Dict[str, Any]) -> Optional[Callable[[str], bool]]:
        return exclude_meta if kwargs.pop("exclude_all_meta") else None

    def sign_cmd_for(kwargs: Dict[str, Any]) -> None:
        if kwargs["sign_cmd"] is not None:
            kwargs["sign_cmd"] = tuple(kwargs["sign_cmd"].split())

    @click.group(help="""
        apkrepack - patch & re-sign android apks
    """)
    @click.option("-v", "--verbose", count=True, help="Be verbose (repeat for debug output).")
    @click.version_option(__version__)
    def cli(verbose: int) -> None:
        level = logging.DEBUG if verbose > 1 else logging.INFO if verbose else logging.WARNING
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    @cli.command(help="""
        Replace (or add) entries in SOURCE_APK and save as (unsigned) OUTPUT_APK.
    """)
    @patch_options
    @click.argument("source_apk", type=click.Path(exists=True, dir_okay=False))
    @click.argument("output_apk", type=click.Path(dir_okay=False))
    def patch(*args: Any, **kwargs: Any) -> None:
        exclude = exclude_for(kwargs)
        do_patch(*args, exclude=exclude, **kwargs)

    @cli.command(help="""
        Sign INPUT_APK and save as OUTPUT_APK.

        This command requires apksigner.
    """)
    @sign_options
    @click.argument("input_apk", type=click.Path(exists=True, dir_okay=False))
    @click.argument("output_apk", type=click.Path(dir_okay=False))
    def sign(*args: Any, **kwargs: Any) -> None:
        sign_cmd_for(kwargs)
        schemes = signer.do_sign(*args, **kwargs)
        click.echo("signed with " + " ".join(sorted(schemes)))

    @cli.command(help="""
        Replace (or add) entries in SOURCE_APK, sign the result, and save as
        OUTPUT_APK.

        This command requires apksigner.
    """)
    @patch_options
    @sign_options
    @click.argument("source_apk", type=click.Path(exists=True, dir_okay=False))
    @click.argument("output_apk", type=click.Path(dir_okay=False))
    def build(source_apk: str, output_apk: str, **kwargs: Any) -> None:
        sign_cmd_for(kwargs)
        exclude = exclude_for(kwargs)
        _, schemes = do_build(source_apk, output_apk, kwargs.pop("keystore_dir"),
                              kwargs.pop("min_sdk_version"), exclude=exclude, **kwargs)
        click.echo("signed with " + " ".join(sorted(schemes)))

    @cli.command(help="""
        Show the signature schemes used for APKs with MIN_SDK_VERSION.
    """)
    @click.option("--v4/--no-v4", "enable_v4", default=None,
                  help="Enable v4 signing (where supported).")
    @click.argument("min_sdk_version", type=click.INT)
    def schemes(min_sdk_version: int, enable_v4: Optional[bool]) -> None:
        selected = signer.select_schemes(min_sdk_version, enable_v4=enable_v4)
        click.echo(" ".join(sorted(selected)))

    try:
        cli(prog_name=NAME)
    except APKRepackError as e:
        click.echo(f"Error: {e}.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

# vim: set tw=80 sw=4 sts=4 et fdm=marker :
