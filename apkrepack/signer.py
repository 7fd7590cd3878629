# encoding: utf-8
# SPDX-FileCopyrightText: 2024 FC (Fay) Stegerman <flx@obfusk.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""
load signing keys, select signature schemes & sign apks (using apksigner)

The key store is a directory containing the private key as raw PKCS#8 DER
(app_key.pk8) and the X.509 certificate as PEM or bare Base64 (app_cert.pem).
Both are read fresh for every signing operation.
"""

import base64
import logging
import os
import re
import subprocess
import tempfile

from collections import namedtuple
from typing import Callable, FrozenSet, List, Optional, Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from . import CertificateFormatError, KeyLoadError, SigningError

KEY_FILE = "app_key.pk8"
CERT_FILE = "app_cert.pem"

PEM_BEGIN = "-----BEGIN CERTIFICATE-----"
PEM_END = "-----END CERTIFICATE-----"

SCHEMES: Tuple[str, ...] = ("v1", "v2", "v3", "v4")
MIN_SDK_V2 = 24                                 # android 7.0
MIN_SDK_V3 = 28                                 # android 9
MIN_SDK_V4 = 30                                 # android 11

SIGN_CMD: Tuple[str, ...] = ("apksigner", "sign")
SIGNER_NAME = "CERT"

SigningIdentity = namedtuple("SigningIdentity", ("private_key", "certificates"))

# NB: v4 signatures are written to a separate .idsig file that must be provided
# to the installer as well; only enable once that is taken care of.
enable_v4_signing = False   # enable v4 signing in select_schemes()

log = logging.getLogger(__name__)


def select_schemes(min_sdk_version: int, *, enable_v4: Optional[bool] = None) -> FrozenSet[str]:
    r"""
    Select the signature schemes for an APK that must install on devices with
    SDK version min_sdk_version (and up).

    v1 is always enabled; v2 and v3 are enabled when supported by all such
    devices; v4 only when enable_v4 (or, when that is None, the global
    enable_v4_signing) is True as well.

    >>> sorted(select_schemes(21))
    ['v1']
    >>> sorted(select_schemes(24))
    ['v1', 'v2']
    >>> sorted(select_schemes(28))
    ['v1', 'v2', 'v3']
    >>> sorted(select_schemes(33))
    ['v1', 'v2', 'v3']
    >>> sorted(select_schemes(33, enable_v4=True))
    ['v1', 'v2', 'v3', 'v4']
    >>> sorted(select_schemes(28, enable_v4=True))
    ['v1', 'v2', 'v3']

    """
    if enable_v4 is None:
        enable_v4 = enable_v4_signing
    schemes = {"v1"}
    if min_sdk_version >= MIN_SDK_V2:
        schemes.add("v2")
    if min_sdk_version >= MIN_SDK_V3:
        schemes.add("v3")
    if enable_v4:
        if min_sdk_version >= MIN_SDK_V4:
            schemes.add("v4")
        else:
            log.info("Not using v4 signing: requires min SDK version %d, got %d",
                     MIN_SDK_V4, min_sdk_version)
    return frozenset(schemes)


def load_private_key(data: bytes) -> RSAPrivateKey:
    """Load RSA private key from (unencrypted) PKCS#8 DER data."""
    try:
        key = serialization.load_der_private_key(data, None)
    except (TypeError, ValueError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"Unable to decode PKCS#8 private key: {e}")     # pylint: disable=W0707
    if not isinstance(key, RSAPrivateKey):
        raise KeyLoadError(f"Unsupported private key type: {key.__class__.__name__}")
    return key


def parse_pem_certificate(text: str) -> Optional[x509.Certificate]:
    """
    Parse the first PEM certificate in text.

    Returns None if there are no BEGIN/END CERTIFICATE markers (or nothing
    between them).
    """
    start = text.find(PEM_BEGIN)
    if start == -1:
        return None
    end = text.find(PEM_END, start + len(PEM_BEGIN))
    if end == -1 or not text[start + len(PEM_BEGIN):end].strip():
        return None
    pem = text[start:end + len(PEM_END)] + "\n"
    return x509.load_pem_x509_certificate(pem.encode())


def parse_base64_certificate(text: str) -> Optional[x509.Certificate]:
    """
    Parse text as Base64-encoded DER certificate, ignoring any PEM markers and
    whitespace.

    Returns None if there is nothing left to decode.
    """
    data = re.sub(r"\s+", "", text.replace(PEM_BEGIN, "").replace(PEM_END, ""))
    if not data:
        return None
    return x509.load_der_x509_certificate(base64.b64decode(data, validate=True))


# tried in order, first one to return a certificate wins
CERTIFICATE_PARSERS: Tuple[Callable[[str], Optional[x509.Certificate]], ...] = (
    parse_pem_certificate,
    parse_base64_certificate,
)


def load_certificate(text: str) -> x509.Certificate:
    """
    Load X.509 certificate from PEM or bare Base64 text.

    Raises CertificateFormatError when none of the CERTIFICATE_PARSERS succeed.
    """
    errors: List[str] = []
    for parser in CERTIFICATE_PARSERS:
        try:
            cert = parser(text)
        except ValueError as e:
            log.debug("%s failed: %s", parser.__name__, e)
            errors.append(f"{parser.__name__}: {e}")
            continue
        if cert is not None:
            return cert
    if not errors:
        raise CertificateFormatError("No certificate found")
    raise CertificateFormatError("Unable to decode certificate ({})".format("; ".join(errors)))


def load_identity(keystore_dir: str) -> SigningIdentity:
    """Load private key (KEY_FILE) and certificate (CERT_FILE) from keystore_dir."""
    key_file = os.path.join(keystore_dir, KEY_FILE)
    cert_file = os.path.join(keystore_dir, CERT_FILE)
    try:
        with open(key_file, "rb") as fh:
            key_data = fh.read()
        with open(cert_file, "rb") as fh:
            cert_data = fh.read()
    except OSError as e:
        raise KeyLoadError(f"Unable to read key store: {e}")    # pylint: disable=W0707
    private_key = load_private_key(key_data)
    try:
        cert_text = cert_data.decode()
    except UnicodeDecodeError as e:
        raise CertificateFormatError(f"Unable to decode {CERT_FILE}: {e}")     # pylint: disable=W0707
    return SigningIdentity(private_key, (load_certificate(cert_text),))


def check_identity(identity: SigningIdentity) -> None:
    """Raises SigningError unless the certificate matches the private key."""
    if not identity.certificates:
        raise SigningError("No certificate")
    fmt = (serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
    key_pub = identity.private_key.public_key().public_bytes(*fmt)
    cert_pub = identity.certificates[0].public_key().public_bytes(*fmt)
    if key_pub != cert_pub:
        raise SigningError("Private key does not match certificate")


def apksigner_args(input_apk: str, output_apk: str, key_file: str, cert_file: str,
                   schemes: FrozenSet[str], min_sdk_version: int,
                   max_sdk_version: Optional[int] = None,
                   sign_cmd: Optional[Tuple[str, ...]] = None) -> Tuple[str, ...]:
    r"""
    Command line for apksigner sign.

    >>> args = apksigner_args("in.apk", "out.apk", "k.pk8", "c.pem", frozenset(["v1", "v2"]), 24)
    >>> print(" ".join(args))       # doctest: +NORMALIZE_WHITESPACE
    apksigner sign --key k.pk8 --cert c.pem --v1-signer-name CERT
    --v1-signing-enabled true --v2-signing-enabled true
    --v3-signing-enabled false --v4-signing-enabled false
    --min-sdk-version 24 --in in.apk --out out.apk

    """
    args = tuple(sign_cmd or SIGN_CMD)
    args += ("--key", key_file, "--cert", cert_file, "--v1-signer-name", SIGNER_NAME)
    for scheme in SCHEMES:
        args += (f"--{scheme}-signing-enabled", "true" if scheme in schemes else "false")
    args += ("--min-sdk-version", str(min_sdk_version))
    if max_sdk_version is not None:
        args += ("--max-sdk-version", str(max_sdk_version))
    return args + ("--in", input_apk, "--out", output_apk)


def sign_apk(input_apk: str, output_apk: str, identity: SigningIdentity,
             min_sdk_version: int, *, max_sdk_version: Optional[int] = None,
             enable_v4: Optional[bool] = None,
             sign_cmd: Optional[Tuple[str, ...]] = None) -> FrozenSet[str]:
    """
    Sign input_apk with identity using apksigner and save as output_apk.

    The signature schemes are selected by select_schemes(min_sdk_version); a
    v4 signature is saved as output_apk + ".idsig".  The key and certificate
    are only written to a private temporary directory that is removed before
    returning.

    Returns the schemes used.
    """
    if max_sdk_version is not None and max_sdk_version < min_sdk_version:
        raise SigningError(f"Max SDK version {max_sdk_version} < min SDK version {min_sdk_version}")
    check_identity(identity)
    schemes = select_schemes(min_sdk_version, enable_v4=enable_v4)
    log.info("Signing %s with %s (min SDK version %d)", input_apk,
             ", ".join(sorted(schemes)), min_sdk_version)
    with tempfile.TemporaryDirectory(prefix="apkrepack-") as tmpdir:
        key_file = os.path.join(tmpdir, KEY_FILE)
        cert_file = os.path.join(tmpdir, CERT_FILE)
        with open(key_file, "wb") as fh:
            fh.write(identity.private_key.private_bytes(
                serialization.Encoding.DER, serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption()))
        with open(cert_file, "wb") as fh:
            for cert in identity.certificates:
                fh.write(cert.public_bytes(serialization.Encoding.PEM))
        args = apksigner_args(input_apk, output_apk, key_file, cert_file, schemes,
                              min_sdk_version, max_sdk_version, sign_cmd)
        log.debug("Running %r", args)
        try:
            subprocess.run(args, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except subprocess.CalledProcessError as e:
            error = e.stderr.decode(errors="replace").strip()
            raise SigningError(f"failed to sign {input_apk}" +              # pylint: disable=W0707
                               (f": {error}" if error else ""))
        except FileNotFoundError:
            raise SigningError(f"{args[0]} command not found")              # pylint: disable=W0707
    return schemes


def do_sign(input_apk: str, output_apk: str, keystore_dir: str, min_sdk_version: int, *,
            max_sdk_version: Optional[int] = None, enable_v4: Optional[bool] = None,
            sign_cmd: Optional[Tuple[str, ...]] = None) -> FrozenSet[str]:
    """Sign input_apk using the key store in keystore_dir and save as output_apk."""
    identity = load_identity(keystore_dir)
    return sign_apk(input_apk, output_apk, identity, min_sdk_version,
                    max_sdk_version=max_sdk_version, enable_v4=enable_v4, sign_cmd=sign_cmd)

# vim: set tw=80 sw=4 sts=4 et fdm=marker :
