"""certhaproxy crypto utility functions."""
import logging
import re

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import josepy as jose
import pytz

from acme import crypto_util as acme_crypto_util

from certhaproxy import errors


logger = logging.getLogger(__name__)

CERT_PEM_REGEX = re.compile(
    b"-----BEGIN CERTIFICATE-----\r?.+?\r?-----END CERTIFICATE-----\r?\n?",
    re.DOTALL)


def make_key(bits):
    """Generate PEM encoded RSA key.

    :param int bits: Number of bits, at least 2048.

    :returns: new RSA key in PEM form with specified number of bits
    :rtype: bytes

    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())


def load_jwk(key_pem):
    """Wrap a PEM RSA private key for signing ACME requests.

    :param bytes key_pem: Private key

    :rtype: josepy.JWKRSA

    :raises .errors.Error: if the key can't be parsed

    """
    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as error:
        raise errors.Error("Invalid account key: {0}".format(error))
    return jose.JWKRSA(key=jose.ComparableRSAKey(key))


def make_csr(key_pem, domains):
    """Generate a CSR for ``domains``, all in subjectAltName.

    :param bytes key_pem: Domain private key
    :param list domains: Domain names, first one is the main name

    :returns: PEM encoded CSR
    :rtype: bytes

    """
    return acme_crypto_util.make_csr(key_pem, list(domains))


def _load_cert(cert_pem):
    if isinstance(cert_pem, str):
        cert_pem = cert_pem.encode()
    try:
        return x509.load_pem_x509_certificate(cert_pem)
    except ValueError as error:
        raise errors.Error("Invalid certificate: {0}".format(error))


def get_names_from_cert(cert_pem):
    """Get a list of domains from a cert, CN first if it is set.

    :param bytes cert_pem: Certificate in PEM form

    :returns: A list of domain names, without duplicates.
    :rtype: list

    """
    cert = _load_cert(cert_pem)
    names = [attr.value for attr in cert.subject.get_attributes_for_oid(
        x509.NameOID.COMMON_NAME)]
    try:
        san = cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        pass
    else:
        names.extend(san.value.get_values_for_type(x509.DNSName))
    seen = set()
    return [name for name in names
            if not (name in seen or seen.add(name))]


def notBefore(cert_pem):
    """When does the cert start being valid?

    :param bytes cert_pem: Certificate in PEM form

    :rtype: :class:`datetime.datetime`, in UTC

    """
    return _load_cert(cert_pem).not_valid_before_utc.astimezone(pytz.UTC)


def notAfter(cert_pem):
    """When does the cert stop being valid?

    :param bytes cert_pem: Certificate in PEM form

    :rtype: :class:`datetime.datetime`, in UTC

    """
    return _load_cert(cert_pem).not_valid_after_utc.astimezone(pytz.UTC)


def cert_and_chain_from_fullchain(fullchain_pem):
    """Split fullchain_pem into cert_pem and chain_pem

    :param bytes fullchain_pem: concatenated cert + chain

    :returns: tuple of cert_pem and chain_pem, both bytes
    :rtype: tuple

    :raises .errors.Error: if there is no certificate at all

    """
    if isinstance(fullchain_pem, str):
        fullchain_pem = fullchain_pem.encode()
    certs = [cert.rstrip(b"\r\n") + b"\n"
             for cert in CERT_PEM_REGEX.findall(fullchain_pem)]
    if not certs:
        raise errors.Error("No certificate found in the issued chain")
    return certs[0], b"".join(certs[1:])
