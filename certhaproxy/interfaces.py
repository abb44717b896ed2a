"""certhaproxy capability interfaces.

The orchestrator only relies on these, so every collaborator can be
replaced by any object providing the same interface.

"""
import zope.interface

# pylint: disable=no-self-argument,no-method-argument,inherit-non-class


class IChallengeResponder(zope.interface.Interface):
    """Publishes HTTP-01 validation tokens.

    Every method takes a per-call ``config``; when it has a
    ``webroot_path``, it overrides the responder's default one.

    """

    def store(config, domain, token, secret):
        """Publish ``secret`` under ``token``.

        :raises .FilesystemError: if the token could not be written

        """

    def retrieve(config, domain, token):
        """Read the secret published under ``token``.

        :raises .NotFoundError: if the token is not published
        :raises .FilesystemError: if it could not be read

        """

    def remove(config, domain, token):
        """Retire ``token``. Removing an absent token succeeds.

        :raises .FilesystemError: if the token could not be deleted

        """

    def get_configuration():
        """Default options the responder was created with."""


class ICertStore(zope.interface.Interface):
    """Durable storage for account and certificate material."""

    def get_options():
        """Options the store was created with."""

    def load_account_key():
        """Account private key in PEM form, or ``None``."""

    def save_account_key(key_pem):
        """Persist the account private key."""

    def load_registration():
        """Saved `acme.messages.RegistrationResource`, or ``None``."""

    def save_registration(regr):
        """Persist the account registration resource."""

    def load_domain_key():
        """Domain private key to reuse, in PEM form, or ``None``."""

    def save_certificate(domains, key_pem, cert_pem, chain_pem, fullchain_pem):
        """Persist an issued certificate.

        :returns: The stored certificate.
        :rtype: .CertificateBundle

        """

    def load_certificate(domains):
        """Stored certificate covering exactly ``domains``, or ``None``."""


class IAcmeEngine(zope.interface.Interface):
    """Registers and renews certificates with an ACME server."""

    def register(agree_tos, domains, email, rsa_key_size, challenge_type):
        """Obtain a certificate for ``domains``.

        The result may carry a pending renewal in its ``renewing``
        attribute.

        :rtype: .CertificateBundle

        :raises .ProtocolError: if the ACME server failed the request

        """

    def check(config):
        """Existing certificate matching ``config``, or ``None``."""

    def renew(config, existing):
        """Renew ``existing``.

        :rtype: .CertificateBundle

        :raises .ProtocolError: if the ACME server failed the request

        """

    def shutdown():
        """Wait for background work to finish and release it."""
