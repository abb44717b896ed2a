"""Test utilities."""
import datetime
import logging
import os
import shutil
import tempfile
import unittest

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import pytz

from certhaproxy import configuration


_KEYS = {}


def load_rsa_private_key(bits=2048):
    """Private key object, generated once per size and test run."""
    if bits not in _KEYS:
        _KEYS[bits] = rsa.generate_private_key(
            public_exponent=65537, key_size=bits)
    return _KEYS[bits]


def key_pem(bits=2048):
    """PEM encoded `load_rsa_private_key`."""
    return load_rsa_private_key(bits).private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())


def make_cert(domains, not_before=None, not_after=None, issuer=None):
    """Self-signed PEM certificate for ``domains``.

    :param list domains: CN is the first one, all of them go into the SAN
    :param datetime.datetime not_before: defaults to a day ago
    :param datetime.datetime not_after: defaults to 90 days from now
    :param str issuer: issuer CN, defaults to the subject

    :rtype: bytes

    """
    now = datetime.datetime.now(pytz.UTC).replace(microsecond=0)
    not_before = not_before or now - datetime.timedelta(days=1)
    not_after = not_after or now + datetime.timedelta(days=90)
    key = load_rsa_private_key()
    subject = x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME,
                                            domains[0])])
    issuer_name = x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME,
                                                issuer)]) if issuer else subject
    cert = (x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(x509.SubjectAlternativeName(
                [x509.DNSName(domain) for domain in domains]), critical=False)
            .sign(key, hashes.SHA256()))
    return cert.public_bytes(serialization.Encoding.PEM)


def make_fullchain(domains, **kwargs):
    """Certificate for ``domains`` followed by a fake issuer."""
    return (make_cert(domains, **kwargs) +
            make_cert(["Fake LE Intermediate X1"]))


def make_config(tempdir, **kwargs):
    """Valid `.Configuration` with every directory below ``tempdir``."""
    options = dict(
        domains=["example.com", "www.example.com"],
        email="admin@example.com",
        agree_tos=True,
        config_dir=os.path.join(tempdir, "etc"),
        webroot_path=os.path.join(tempdir, "webroot"),
    )
    options.update(kwargs)
    return configuration.Configuration(**options)


class TempDirTestCase(unittest.TestCase):
    """Base test class which sets up and tears down a temporary directory"""

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()

    def tearDown(self):
        logging.shutdown()
        # Remove logging handlers that have been closed so they won't be
        # accidentally used in future tests.
        logging.getLogger().handlers = []
        shutil.rmtree(self.tempdir)


class ConfigTestCase(TempDirTestCase):
    """Test class which sets up a Configuration rooted in the temp dir."""

    def setUp(self):
        super().setUp()
        self.config = make_config(self.tempdir)
