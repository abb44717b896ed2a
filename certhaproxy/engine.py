"""ACME engine backed by the ``acme`` library.

Handles accounts, orders and authorizations on behalf of the
orchestrator. Validation tokens are published through the http-01
challenge responder it was created with; everything durable goes
through the store.

"""
import concurrent.futures
import datetime
import logging

import josepy as jose
import requests
import zope.interface

from acme import challenges
from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages

import certhaproxy
from certhaproxy import constants
from certhaproxy import crypto_util
from certhaproxy import errors
from certhaproxy import interfaces

logger = logging.getLogger(__name__)

USER_AGENT = "certhaproxy/{0}".format(certhaproxy.__version__)


@zope.interface.implementer(interfaces.IAcmeEngine)
class AcmeEngine(object):
    """Registers and renews certificates.

    :ivar dict challenges: Challenge responders by challenge type, only
        ``http-01`` is used.
    :ivar store: `.ICertStore` provider
    :ivar str server: ACME directory URL
    :ivar datetime.timedelta renew_within: How long before expiry an
        existing certificate gets renewed.
    :ivar bool duplicate: Always issue, even if a fresh certificate for
        the same names exists.

    """

    def __init__(self, challenges, store, server, renew_within,  # pylint: disable=redefined-outer-name
                 duplicate=False, debug=False, http01_port=80,
                 self_verify=True, user_agent=USER_AGENT):
        self.challenges = challenges
        self.store = store
        self.server = server
        self.renew_within = renew_within
        self.duplicate = duplicate
        self.debug = debug
        self.http01_port = http01_port
        self.self_verify = self_verify
        self.user_agent = user_agent
        self._executor = None

    def register(self, agree_tos, domains, email, rsa_key_size,
                 challenge_type=constants.CHALLENGE_TYPE):
        """Obtain a certificate for ``domains``.

        A stored certificate for the same names is returned as is while
        it is outside its renewal window. Inside the window, it is
        returned with a renewal running in the background, available as
        its ``renewing`` future. Expired certificates, or any certificate
        when ``duplicate`` is set, are replaced right away.

        """
        if not agree_tos:
            raise errors.ConfigurationError(
                "Registration requires agreeing to the Subscriber Agreement.")
        responder = self._responder(challenge_type)
        domains = list(domains)

        existing = self.store.load_certificate(domains)
        if existing is not None and not self.duplicate:
            if not existing.should_renew(self.renew_within):
                logger.info("Certificate for %s is valid until %s, "
                            "nothing to do.", ", ".join(domains),
                            existing.expires_at)
                return existing
            if not existing.is_expired():
                logger.info("Certificate for %s expires on %s, renewing.",
                            ", ".join(domains), existing.expires_at)
                existing.renewing = self._submit(
                    self._obtain, domains, email, rsa_key_size, responder)
                return existing
            logger.info("Certificate for %s has expired.", ", ".join(domains))

        return self._obtain(domains, email, rsa_key_size, responder)

    def check(self, config):
        """Stored certificate for ``config.domains``, or ``None``."""
        return self.store.load_certificate(list(config.domains))

    def renew(self, config, existing):
        """Replace ``existing`` if it is due, or if ``duplicate`` is set."""
        if not self.duplicate and not existing.should_renew(self.renew_within):
            logger.info("Certificate for %s is not due for renewal before "
                        "%s.", ", ".join(existing.altnames),
                        existing.expires_at - self.renew_within)
            return existing
        return self._obtain(list(config.domains), config.email,
                            config.rsa_key_size,
                            self._responder(constants.CHALLENGE_TYPE))

    def shutdown(self):
        """Wait for a background renewal, if any, to finish."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _responder(self, challenge_type):
        if challenge_type != constants.CHALLENGE_TYPE:
            raise errors.ConfigurationError(
                "Unsupported challenge type: {0}".format(challenge_type))
        try:
            return self.challenges[challenge_type]
        except KeyError:
            raise errors.ConfigurationError(
                "No responder for {0} challenges".format(challenge_type))

    def _submit(self, func, *args):
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1)
        return self._executor.submit(func, *args)

    def _obtain(self, domains, email, rsa_key_size, responder):
        logger.info("Requesting a certificate for %s from %s",
                    ", ".join(domains), self.server)
        try:
            acme, account_key = self._client(email, rsa_key_size)

            key_pem = self.store.load_domain_key()
            if key_pem is None:
                key_pem = crypto_util.make_key(rsa_key_size)
            orderr = acme.new_order(crypto_util.make_csr(key_pem, domains))

            published = []
            try:
                for authzr in orderr.authorizations:
                    self._answer(acme, account_key, responder, authzr,
                                 published)
                deadline = datetime.datetime.now() + datetime.timedelta(
                    seconds=constants.ISSUANCE_TIMEOUT)
                logger.debug("Will poll for certificate issuance until %s",
                             deadline)
                orderr = acme.poll_and_finalize(orderr, deadline)
            finally:
                self._cleanup(responder, published)
        except (acme_errors.Error, jose.Error,
                requests.exceptions.RequestException) as error:
            logger.debug("ACME request failed:", exc_info=True)
            raise errors.ProtocolError(
                "Failed to obtain a certificate for {0}: {1}".format(
                    ", ".join(domains), error), error) from error

        fullchain_pem = orderr.fullchain_pem.encode()
        cert_pem, chain_pem = crypto_util.cert_and_chain_from_fullchain(
            fullchain_pem)
        return self.store.save_certificate(
            domains, key_pem, cert_pem, chain_pem, fullchain_pem)

    def _client(self, email, rsa_key_size):
        key_pem = self.store.load_account_key()
        if key_pem is None:
            logger.info("Generating a new account key")
            key_pem = crypto_util.make_key(rsa_key_size)
            self.store.save_account_key(key_pem)
        account_key = crypto_util.load_jwk(key_pem)

        regr = self.store.load_registration()
        net = acme_client.ClientNetwork(account_key, account=regr,
                                        user_agent=self.user_agent)
        directory = acme_client.ClientV2.get_directory(self.server, net)
        acme = acme_client.ClientV2(directory, net)

        if regr is None:
            regr = self._new_account(acme, email)
            self.store.save_registration(regr)
        return acme, account_key

    def _new_account(self, acme, email):
        try:
            regr = acme.new_account(messages.NewRegistration.from_data(
                email=email, terms_of_service_agreed=True))
            logger.info("Registered a new account for %s", email)
            return regr
        except acme_errors.ConflictError as error:
            logger.info("Account key is already registered at %s",
                        error.location)
            return acme.query_registration(messages.RegistrationResource(
                uri=error.location, body=messages.Registration()))

    def _answer(self, acme, account_key, responder, authzr, published):
        domain = authzr.body.identifier.value
        if authzr.body.status == messages.STATUS_VALID:
            logger.debug("%s is already authorized", domain)
            return

        challb = next((challb for challb in authzr.body.challenges
                       if isinstance(challb.chall, challenges.HTTP01)), None)
        if challb is None:
            raise errors.ProtocolError(
                "The ACME server offered no http-01 challenge for "
                "{0}".format(domain))

        response, validation = challb.chall.response_and_validation(
            account_key)
        token = challb.chall.encode("token")
        if self.debug:
            logger.debug("Publishing %s for %s at %s", validation, domain,
                         challb.chall.uri(domain))
        responder.store(self.store.get_options(), domain, token, validation)
        published.append((domain, token))

        if self.self_verify and not response.simple_verify(
                challb.chall, domain, account_key.public_key(),
                port=self.http01_port):
            logger.warning(
                "Self-verify of challenge failed for %s; %s is probably "
                "not served on port %d. Trying anyway.", domain,
                challb.chall.uri(domain), self.http01_port)

        acme.answer_challenge(challb, response)
        logger.debug("Answered http-01 challenge for %s", domain)

    def _cleanup(self, responder, published):
        for domain, token in published:
            try:
                responder.remove(self.store.get_options(), domain, token)
            except errors.FilesystemError as error:
                logger.warning("Unable to clean up challenge for %s: %s",
                               domain, error)
