# SPDX-FileCopyrightText: 2024 FC (Fay) Stegerman <flx@obfusk.net>
# SPDX-License-Identifier: GPL-3.0-or-later

import datetime
import os
import struct
import sys
import warnings
import zipfile

from typing import Iterable, Optional, Tuple

import pytest

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from apkrepack.signer import CERT_FILE, KEY_FILE

FAKE_APKSIGNER = os.path.join(os.path.dirname(__file__), "fake_apksigner.py")

Entry = Tuple[str, bytes, int]

ENTRIES: Tuple[Entry, ...] = (
    ("META-INF/", b"", zipfile.ZIP_STORED),
    ("AndroidManifest.xml", b"\x03\x00\x08\x00" + b"manifest" * 64, zipfile.ZIP_DEFLATED),
    ("classes.dex", b"dex\n035\x00" + bytes(range(256)) * 8, zipfile.ZIP_DEFLATED),
    ("res/", b"", zipfile.ZIP_STORED),
    ("res/raw/hello.txt", b"hello world\n", zipfile.ZIP_STORED),
    ("resources.arsc", b"\x02\x00\x0c\x00" + b"\x00" * 124, zipfile.ZIP_STORED),
    ("lib/arm64-v8a/libfoo.so", b"\x7fELF" + b"\x01" * 200, zipfile.ZIP_STORED),
    ("assets/config.json", b'{"debug": false}\n', zipfile.ZIP_DEFLATED),
)


def make_apk(path: str, entries: Iterable[Entry], comment: Optional[bytes] = None) -> str:
    """Write ZIP file with (filename, data, compress_type) entries; duplicates are allowed."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        with zipfile.ZipFile(path, "w") as zf:
            for filename, data, compress_type in entries:
                info = zipfile.ZipInfo(filename, date_time=(2020, 1, 1, 0, 0, 0))
                info.compress_type = compress_type
                zf.writestr(info, data)
            if comment is not None:
                zf.comment = comment
    return path


def data_offset(path: str, info: zipfile.ZipInfo) -> int:
    """Offset of the entry data (using the local file header)."""
    with open(path, "rb") as fh:
        fh.seek(info.header_offset)
        hdr = fh.read(30)
    n, m = struct.unpack("<HH", hdr[26:30])
    return info.header_offset + 30 + n + m


def make_certificate(key: rsa.RSAPrivateKey, name: str = "apkrepack test") -> x509.Certificate:
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, name)])
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime.datetime(2020, 1, 1))
        .not_valid_after(datetime.datetime(2050, 1, 1))
        .sign(key, hashes.SHA256())
    )


def write_keystore(keystore_dir: str, key: rsa.RSAPrivateKey, cert_text: str) -> str:
    with open(os.path.join(keystore_dir, KEY_FILE), "wb") as fh:
        fh.write(key.private_bytes(serialization.Encoding.DER, serialization.PrivateFormat.PKCS8,
                                   serialization.NoEncryption()))
    with open(os.path.join(keystore_dir, CERT_FILE), "w", encoding="utf-8") as fh:
        fh.write(cert_text)
    return keystore_dir


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key: rsa.RSAPrivateKey) -> x509.Certificate:
    return make_certificate(rsa_key)


@pytest.fixture
def keystore(tmp_path, rsa_key, certificate) -> str:
    pem = certificate.public_bytes(serialization.Encoding.PEM).decode()
    path = tmp_path / "keystore"
    path.mkdir()
    return write_keystore(str(path), rsa_key, pem)


@pytest.fixture
def source_apk(tmp_path) -> str:
    return make_apk(str(tmp_path / "source.apk"), ENTRIES)


@pytest.fixture
def fake_sign_cmd() -> Tuple[str, ...]:
    return (sys.executable, FAKE_APKSIGNER, "sign")
