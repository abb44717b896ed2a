"""Certificate and account storage."""
import datetime
import logging
import os
from urllib import parse

import configobj
import pyrfc3339
import pytz
import zope.interface

from acme import messages

import certhaproxy
from certhaproxy import configuration
from certhaproxy import constants
from certhaproxy import crypto_util
from certhaproxy import interfaces
from certhaproxy import paths
from certhaproxy import util

logger = logging.getLogger(__name__)

ALL_FOUR = ("cert", "privkey", "chain", "fullchain")


class CertificateBundle(object):
    """Result of a successful issuance or renewal.

    :ivar list altnames: Names covered by the certificate, main name first.
    :ivar datetime.datetime issued_at: notBefore, UTC.
    :ivar datetime.datetime expires_at: notAfter, UTC.
    :ivar str privkey: Path of the domain private key.
    :ivar str cert: Path of the certificate.
    :ivar str chain: Path of the issuer chain.
    :ivar str fullchain: Path of certificate + chain.
    :ivar renewing: ``None``, or a pending renewal; an object with a
        ``result()`` method returning the renewed `CertificateBundle`
        (usually a `concurrent.futures.Future`).

    """

    def __init__(self, altnames, issued_at, expires_at, privkey=None,
                 cert=None, chain=None, fullchain=None, renewing=None):
        self.altnames = list(altnames)
        self.issued_at = issued_at
        self.expires_at = expires_at
        self.privkey = privkey
        self.cert = cert
        self.chain = chain
        self.fullchain = fullchain
        self.renewing = renewing

    def is_expired(self, now=None):
        """Is the certificate past its notAfter?"""
        now = now or datetime.datetime.now(pytz.UTC)
        return now >= self.expires_at

    def should_renew(self, renew_within, now=None):
        """Is the certificate inside its renewal window?

        :param datetime.timedelta renew_within: Renew this long before
            expiry.

        """
        now = now or datetime.datetime.now(pytz.UTC)
        return now >= self.expires_at - renew_within

    def __eq__(self, other):
        return (isinstance(other, self.__class__) and
                self.altnames == other.altnames and
                self.issued_at == other.issued_at and
                self.expires_at == other.expires_at and
                all(getattr(self, kind) == getattr(other, kind)
                    for kind in ALL_FOUR))

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "<{0}({1}, expires {2})>".format(
            self.__class__.__name__, ",".join(self.altnames),
            self.expires_at)


def server_path(server):
    """Directory name, relative to the accounts dir, for ``server``."""
    parsed = parse.urlparse(configuration.normalize_server_url(server))
    return (parsed.netloc + parsed.path).replace('/', os.path.sep)


@zope.interface.implementer(interfaces.ICertStore)
class CertStore(object):
    """File based store for one `.Configuration`.

    Certificates go where the configured path templates point to,
    metadata into ``<config_dir>/renewal/<hostname>.conf`` and account
    material into ``<config_dir>/accounts/<server>/``.

    """

    def __init__(self, config):
        self.config = config
        self.context = paths.PathContext.from_config(config)

    def get_options(self):
        """Templates and directories the store works with."""
        return {
            "config_dir": self.config.config_dir,
            "webroot_path": self.config.webroot_path,
            "privkey_path": self.config.effective_privkey_path,
            "domain_key_path": self.config.domain_key_path,
            "account_key_path": self.config.account_key_path,
            "cert_path": self.config.cert_path,
            "chain_path": self.config.chain_path,
            "fullchain_path": self.config.fullchain_path,
        }

    def _resolve(self, template):
        return paths.resolve(template, self.context)

    @property
    def account_dir(self):  # pylint: disable=missing-docstring
        return os.path.join(self.config.accounts_dir,
                            server_path(self.config.server))

    @property
    def account_key_path(self):  # pylint: disable=missing-docstring
        if self.config.account_key_path:
            return self._resolve(self.config.account_key_path)
        return os.path.join(self.account_dir, constants.ACCOUNT_KEY_FILE)

    @property
    def registration_path(self):  # pylint: disable=missing-docstring
        return os.path.join(self.account_dir, constants.REGISTRATION_FILE)

    @property
    def renewal_path(self):  # pylint: disable=missing-docstring
        return os.path.join(self.config.renewal_configs_dir,
                            "{0}.conf".format(self.config.hostname))

    def target_paths(self):
        """Resolved destination of each of `ALL_FOUR`."""
        return {
            "cert": self._resolve(self.config.cert_path),
            "privkey": self._resolve(self.config.effective_privkey_path),
            "chain": self._resolve(self.config.chain_path),
            "fullchain": self._resolve(self.config.fullchain_path),
        }

    def load_account_key(self):
        if not os.path.exists(self.account_key_path):
            return None
        logger.debug("Loading account key from %s", self.account_key_path)
        return util.read_file(self.account_key_path)

    def save_account_key(self, key_pem):
        logger.debug("Saving account key to %s", self.account_key_path)
        util.write_file_atomically(self.account_key_path, key_pem,
                                   chmod=constants.BASE_PRIVKEY_MODE)

    def load_registration(self):
        if not os.path.exists(self.registration_path):
            return None
        return messages.RegistrationResource.json_loads(
            util.read_file(self.registration_path, "r"))

    def save_registration(self, regr):
        util.write_file_atomically(
            self.registration_path, regr.json_dumps_pretty().encode())

    def load_domain_key(self):
        """Key at ``domain_key_path``, if one was configured and exists."""
        if not self.config.domain_key_path:
            return None
        path = self._resolve(self.config.domain_key_path)
        if not os.path.exists(path):
            logger.info("No private key at %s yet, generating a new one",
                        path)
            return None
        return util.read_file(path)

    def save_certificate(self, domains, key_pem, cert_pem, chain_pem,
                         fullchain_pem):
        target = self.target_paths()
        util.write_file_atomically(target["privkey"], key_pem,
                                   chmod=constants.BASE_PRIVKEY_MODE)
        util.write_file_atomically(target["cert"], cert_pem)
        util.write_file_atomically(target["chain"], chain_pem)
        util.write_file_atomically(target["fullchain"], fullchain_pem)

        bundle = CertificateBundle(
            altnames=crypto_util.get_names_from_cert(cert_pem) or domains,
            issued_at=crypto_util.notBefore(cert_pem),
            expires_at=crypto_util.notAfter(cert_pem),
            **target)
        self._write_renewal_config(bundle)
        logger.info("Saved certificate for %s to %s",
                    ", ".join(bundle.altnames), target["cert"])
        return bundle

    def _write_renewal_config(self, bundle):
        config = configobj.ConfigObj()
        config["version"] = certhaproxy.__version__
        for kind in ALL_FOUR:
            config[kind] = getattr(bundle, kind)
        config["metadata"] = {
            "altnames": bundle.altnames,
            "issued_at": pyrfc3339.generate(bundle.issued_at),
            "expires_at": pyrfc3339.generate(bundle.expires_at),
            "server": configuration.normalize_server_url(self.config.server),
        }
        logger.debug("Writing new config %s.", self.renewal_path)
        util.write_file_atomically(
            self.renewal_path, "\n".join(config.write()).encode() + b"\n")

    def load_certificate(self, domains):
        if not os.path.exists(self.renewal_path):
            logger.debug("No renewal file at %s", self.renewal_path)
            return None
        try:
            config = configobj.ConfigObj(self.renewal_path)
        except configobj.ConfigObjError as error:
            logger.warning("Ignoring unreadable renewal file %s: %s",
                           self.renewal_path, error)
            return None
        if any(kind not in config for kind in ALL_FOUR):
            logger.warning("Renewal file %s is missing certificate paths",
                           self.renewal_path)
            return None
        if not os.path.exists(config["cert"]):
            logger.debug("Certificate %s is gone", config["cert"])
            return None

        cert_pem = util.read_file(config["cert"])
        altnames = crypto_util.get_names_from_cert(cert_pem)
        if set(altnames) != set(domains):
            logger.info("Existing certificate covers %s, not %s",
                        ", ".join(altnames), ", ".join(domains))
            return None
        return CertificateBundle(
            altnames=altnames,
            issued_at=crypto_util.notBefore(cert_pem),
            expires_at=crypto_util.notAfter(cert_pem),
            **dict((kind, config[kind]) for kind in ALL_FOUR))
