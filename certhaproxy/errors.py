"""certhaproxy errors."""


class Error(Exception):
    """Generic certhaproxy error."""


class ConfigurationError(Error):
    """Configuration sanity error."""


class FilesystemError(Error):
    """Reading, writing or creating a file or directory failed.

    :ivar OSError error: The underlying operating system error.
    :ivar str path: Path the failed operation was applied to.

    """
    def __init__(self, msg, path=None, error=None):
        super().__init__(msg)
        self.path = path
        self.error = error


class NotFoundError(FilesystemError):
    """A challenge token file does not exist."""


class NotRenewableError(Error):
    """Renewal was requested, but there is no certificate to renew.

    Callers should branch on :attr:`code`, not on the message.

    """
    code = "E_NOT_RENEWABLE"

    def __init__(self, domains):
        super().__init__(
            "No certificate for the domains '{0}' found, aborting "
            "renewal attempt.".format(",".join(domains)))
        self.domains = list(domains)


class ProtocolError(Error):
    """The ACME engine failed (rate limit, validation, CA rejection...).

    :ivar Exception error: Original error raised by the ACME library.

    """
    def __init__(self, msg, error=None):
        super().__init__(msg)
        self.error = error


class ConcatenationError(Error):
    """Key + fullchain concatenation failed after a successful issuance.

    The certificate itself is valid and available as :attr:`bundle`.

    :ivar .CertificateBundle bundle: The issued or renewed certificate.
    :ivar Exception error: The concatenation failure.

    """
    def __init__(self, bundle, error):
        self.bundle = bundle
        self.error = error
        super().__init__(
            "Certificate for {0} was obtained, but writing the key + "
            "fullchain file failed: {1}".format(
                ", ".join(bundle.altnames), error))
