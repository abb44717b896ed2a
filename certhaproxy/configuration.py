"""certhaproxy user-supplied configuration."""
import collections
import numbers
import os

from certhaproxy import constants
from certhaproxy import errors
from certhaproxy import paths
from certhaproxy import util


_FIELDS = (
    "domains",
    "email",
    "agree_tos",
    "config_dir",
    "webroot_path",
    "domain_key_path",
    "privkey_path",
    "account_key_path",
    "cert_path",
    "chain_path",
    "fullchain_path",
    "key_fullchain_path",
    "logs_dir",
    "server",
    "rsa_key_size",
    "renew_within",
    "http01_port",
    "debug",
    "duplicate",
)


class Configuration(collections.namedtuple("Configuration", _FIELDS)):
    """Immutable set of recognized options.

    Fields missing from the keyword arguments take their value from
    :data:`certhaproxy.constants.CLI_DEFAULTS`. Unknown names and invalid
    values raise :class:`.errors.ConfigurationError` right here, before
    any file or network access.

    Path templates (``*_path``, ``logs_dir``) are kept as given; resolve
    them with :mod:`certhaproxy.paths`. ``config_dir`` and
    ``webroot_path`` are made absolute.

    """
    __slots__ = ()

    def __new__(cls, **options):
        unknown = sorted(set(options) - set(cls._fields))
        if unknown:
            raise errors.ConfigurationError(
                "Unrecognized option(s): {0}".format(", ".join(unknown)))

        values = dict((name, constants.CLI_DEFAULTS[name])
                      for name in cls._fields)
        values.update(options)

        if isinstance(values["domains"], str):
            values["domains"] = [values["domains"]]
        values["domains"] = tuple(
            util.enforce_domain_sanity(domain)
            for domain in values["domains"] or ())
        for name in ("config_dir", "webroot_path"):
            if values[name]:
                values[name] = os.path.abspath(
                    os.path.expanduser(values[name]))

        config = super().__new__(cls, **values)
        check_config_sanity(config)
        return config

    @classmethod
    def from_namespace(cls, namespace):
        """Build from an `argparse.Namespace`, ignoring parser-only keys."""
        return cls(**dict((name, getattr(namespace, name))
                          for name in cls._fields
                          if getattr(namespace, name, None) is not None))

    def replace(self, **changes):
        """Validated copy with some fields changed."""
        options = self._asdict()
        options.update(changes)
        return type(self)(**options)

    @property
    def hostname(self):
        """Name substituted for ``:hostname``: the first domain."""
        return self.domains[0]

    @property
    def effective_privkey_path(self):
        """Template of the domain private key file."""
        return self.domain_key_path or self.privkey_path

    @property
    def renewal_configs_dir(self):  # pylint: disable=missing-docstring
        return os.path.join(self.config_dir, constants.RENEWAL_CONFIGS_DIR)

    @property
    def accounts_dir(self):  # pylint: disable=missing-docstring
        return os.path.join(self.config_dir, constants.ACCOUNTS_DIR)

    @property
    def resolved_logs_dir(self):  # pylint: disable=missing-docstring
        return paths.resolve_for(self, self.logs_dir)


def normalize_server_url(url):
    """Real ACME directory URL for ``url``.

    ``staging`` and ``production`` are replaced with the Let's Encrypt
    staging and production directories, anything else is returned
    untouched.

    """
    return constants.SERVER_ALIASES.get(url, url)


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def check_config_sanity(config):
    """Validate options and raise an error if requirements are not met.

    :param Configuration config: Configuration to check

    :raises .errors.ConfigurationError: on the first failed check

    """
    if not config.domains:
        raise errors.ConfigurationError(
            "At least one domain must be given.")

    if not config.email:
        raise errors.ConfigurationError(
            "An email address is required for registration and recovery "
            "contact.")

    if config.agree_tos is not True:
        raise errors.ConfigurationError(
            "You must agree to the ACME server's Subscriber Agreement "
            "(--agree-tos).")

    if not config.config_dir:
        raise errors.ConfigurationError("A configuration directory is required.")

    if not config.webroot_path:
        raise errors.ConfigurationError("A webroot path is required.")

    for name in ("privkey_path", "cert_path", "chain_path", "fullchain_path",
                 "key_fullchain_path", "logs_dir"):
        if not isinstance(getattr(config, name), str) or not getattr(config, name):
            raise errors.ConfigurationError(
                "Invalid {0} option.".format(name))

    for name in ("domain_key_path", "account_key_path"):
        value = getattr(config, name)
        if value is not None and (not isinstance(value, str) or not value):
            raise errors.ConfigurationError(
                "Invalid {0} option.".format(name))

    if not isinstance(config.server, str) or not config.server:
        raise errors.ConfigurationError("Invalid server option.")

    if (not isinstance(config.rsa_key_size, int) or isinstance(config.rsa_key_size, bool)
            or config.rsa_key_size < constants.MIN_RSA_KEY_SIZE):
        raise errors.ConfigurationError(
            "Invalid RSA key size option. Must be {0} or greater.".format(
                constants.MIN_RSA_KEY_SIZE))

    if (not _is_number(config.renew_within)
            or not 0 < config.renew_within <= constants.MAX_RENEW_WITHIN):
        raise errors.ConfigurationError(
            "Invalid renew days option. Must be greater than 0 and at most "
            "{0}.".format(constants.MAX_RENEW_WITHIN))

    if (not isinstance(config.http01_port, int) or isinstance(config.http01_port, bool)
            or not 0 < config.http01_port <= 65535):
        raise errors.ConfigurationError("Invalid HTTP port option.")
