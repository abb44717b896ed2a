"""Certificate issuance and renewal workflow."""
import datetime
import logging

from certhaproxy import configuration
from certhaproxy import constants
from certhaproxy import engine
from certhaproxy import errors
from certhaproxy import keychain
from certhaproxy import storage
from certhaproxy.plugins import webroot

logger = logging.getLogger(__name__)


class CertificateOrchestrator(object):
    """Registers and renews certificates on user's behalf.

    Every run goes through the same steps: build the store, build the
    engine around it, register or renew, then write the key + fullchain
    file. Each step needs the result of the previous one; a failure
    stops the run, except for the last step (see
    :class:`.errors.ConcatenationError`).

    The collaborators are created by the ``create_*`` methods, which
    can be overridden to substitute other implementations of the
    interfaces in :mod:`certhaproxy.interfaces`.

    """

    def create_challenge(self, config):
        """Creates the http-01 challenge responder.

        :param .Configuration config: Configuration

        :rtype: .IChallengeResponder

        """
        return webroot.WebRoot({"webroot_path": config.webroot_path})

    def create_store(self, config):
        """Creates a store for saving certificates and key pairs.

        :param .Configuration config: Configuration

        :rtype: .ICertStore

        """
        return storage.CertStore(config)

    def create_engine(self, store, config):
        """Creates an ACME engine around ``store``.

        :param .ICertStore store: Storage for accounts and certificates
        :param .Configuration config: Configuration

        :rtype: .IAcmeEngine

        """
        return engine.AcmeEngine(
            challenges={constants.CHALLENGE_TYPE: self.create_challenge(config)},
            store=store,
            server=configuration.normalize_server_url(config.server),
            renew_within=datetime.timedelta(days=config.renew_within),
            duplicate=config.duplicate,
            debug=config.debug,
            http01_port=config.http01_port)

    def register(self, acme_engine, config):
        """Registers a certificate for the configured domains.

        :returns: The obtained certificate, never a pending renewal.
        :rtype: .CertificateBundle

        """
        certs = acme_engine.register(
            agree_tos=config.agree_tos,
            domains=list(config.domains),
            email=config.email,
            rsa_key_size=config.rsa_key_size,
            challenge_type=constants.CHALLENGE_TYPE)
        return self.resolve_pending(certs)

    def renew(self, acme_engine, config):
        """Renews the certificate for the configured domains.

        :returns: The renewed certificate, never a pending renewal.
        :rtype: .CertificateBundle

        :raises .NotRenewableError: if there is no certificate to renew

        """
        existing = acme_engine.check(config)
        if not existing:
            raise errors.NotRenewableError(config.domains)
        return self.resolve_pending(acme_engine.renew(config, existing))

    def resolve_pending(self, certs):
        """Waits for the renewal carried by ``certs``, if there is one."""
        while getattr(certs, "renewing", None) is not None:
            logger.info("Waiting for the renewal of %s to complete",
                        ", ".join(certs.altnames))
            certs = certs.renewing.result()
        return certs

    def concatenate(self, config):
        """Writes the key + fullchain file, see `.keychain`."""
        return keychain.concatenate_key_and_fullchain(config)

    def generate_certificate(self, config):
        """Obtains the certificate for ``config.domains``.

        :param .Configuration config: Configuration

        :rtype: .CertificateBundle

        :raises .ConcatenationError: if the certificate was obtained,
            but the key + fullchain file could not be written

        """
        store = self.create_store(config)
        acme_engine = self.create_engine(store, config)
        try:
            return self._finish(config, self.register(acme_engine, config))
        finally:
            acme_engine.shutdown()

    def renew_certificate(self, config):
        """Renews the certificate for ``config.domains``.

        Fails with a :class:`.NotRenewableError`, whose ``code`` is
        ``E_NOT_RENEWABLE``, when no certificate exists yet.

        :param .Configuration config: Configuration

        :rtype: .CertificateBundle

        :raises .ConcatenationError: if the certificate was renewed,
            but the key + fullchain file could not be written

        """
        store = self.create_store(config)
        acme_engine = self.create_engine(store, config)
        try:
            return self._finish(config, self.renew(acme_engine, config))
        finally:
            acme_engine.shutdown()

    def _finish(self, config, certs):
        try:
            self.concatenate(config)
        except errors.Error as error:
            logger.debug("Concatenation failed:", exc_info=True)
            raise errors.ConcatenationError(certs, error) from error
        return certs
