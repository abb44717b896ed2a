"""certhaproxy command line argument & config processing."""
import logging

import configargparse

import certhaproxy
from certhaproxy import configuration
from certhaproxy import constants

logger = logging.getLogger(__name__)

VERBS = {
    "certonly": "Issue/renew certificate(s)",
    "renew": "Renew existing certificate(s); fails if there is none",
}

USAGE = """
  %(prog)s certonly --agree-tos --email EMAIL -d DOMAIN [DOMAIN ...] [options]
  %(prog)s renew --agree-tos --email EMAIL -d DOMAIN [DOMAIN ...] [options]

Every option can also be set in a config file, e.g.
~/.config/certhaproxy/cli.ini, as "long-option-name = value".
"""


def flag_default(name):
    """Default value of the CLI flag ``name``."""
    return constants.CLI_DEFAULTS[name]


def _number(value):
    number = float(value)
    return int(number) if number.is_integer() else number


def _flatten_domains(values):
    domains = []
    for group in values or []:
        for item in group:
            domains.extend(d.strip() for d in item.split(",") if d.strip())
    return domains


def _add_path(parser, flag, dest, help_text):
    default = flag_default(dest)
    parser.add_argument(
        flag, dest=dest, default=default, metavar="PATH",
        help=help_text + (" (default: {0})".format(default)
                          if default is not None else
                          " (default: generate new)"))


def build_parser():
    """Build the argument parser.

    :rtype: configargparse.ArgParser

    """
    parser = configargparse.ArgParser(
        prog="certhaproxy",
        usage=USAGE,
        description="Obtain and renew certificates with the http-01 "
                    "challenge, and save key + fullchain in one file.",
        default_config_files=flag_default("config_files"),
        args_for_setting_config_path=["-c", "--config"],
        config_arg_help_message="path to config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))

    parser.add_argument(
        "verb", choices=sorted(VERBS),
        help="; ".join("{0}: {1}".format(verb, text)
                       for verb, text in sorted(VERBS.items())))
    parser.add_argument(
        "-v", "--version", action="version",
        version="%(prog)s {0}".format(certhaproxy.__version__))
    parser.add_argument(
        "-d", "--domains", dest="domains", action="append", nargs="+",
        metavar="DOMAIN", required=True,
        help="Domain names to apply. For multiple domains use a space or "
             "comma separated list. The first one names the files.")
    parser.add_argument(
        "-m", "--email", dest="email", required=True,
        help="Email used for registration and recovery contact.")
    parser.add_argument(
        "--agree-tos", dest="agree_tos", action="store_true",
        default=flag_default("agree_tos"),
        help="Agree to the ACME server's Subscriber Agreement.")
    parser.add_argument(
        "--server", dest="server", default=flag_default("server"),
        help="ACME Directory Resource URI. Use \"staging\" or "
             "\"production\" for the Let's Encrypt servers. "
             "(default: %(default)s)")
    parser.add_argument(
        "--renew-within", dest="renew_within", type=_number,
        default=flag_default("renew_within"), metavar="DAYS",
        help="Renew certificates this many days before expiry. "
             "(default: %(default)s)")
    parser.add_argument(
        "--rsa-key-size", dest="rsa_key_size", type=int,
        default=flag_default("rsa_key_size"), metavar="N",
        help="Size (in bits) of the RSA key, 2048 or greater. "
             "(default: %(default)s)")
    parser.add_argument(
        "--http-01-port", dest="http01_port", type=int,
        default=flag_default("http01_port"), metavar="PORT",
        help="Port the http-01 challenge is served on. "
             "(default: %(default)s)")
    parser.add_argument(
        "--duplicate", dest="duplicate", action="store_true",
        default=flag_default("duplicate"),
        help="Allow getting a certificate that duplicates an existing "
             "one/is an early renewal.")
    parser.add_argument(
        "--debug", dest="debug", action="store_true",
        default=flag_default("debug"), help="Show traces and logs.")

    _add_path(parser, "--webroot-path", "webroot_path",
              "public_html / webroot path.")
    _add_path(parser, "--config-dir", "config_dir", "Configuration directory.")
    _add_path(parser, "--logs-dir", "logs_dir", "Logs directory.")
    _add_path(parser, "--cert-path", "cert_path",
              "Path to where new cert.pem is saved.")
    _add_path(parser, "--chain-path", "chain_path",
              "Path to where new chain.pem is saved.")
    _add_path(parser, "--fullchain-path", "fullchain_path",
              "Path to where new fullchain.pem (cert + chain) is saved.")
    _add_path(parser, "--key-fullchain-path", "key_fullchain_path",
              "Path to where key + fullchain.pem is saved.")
    _add_path(parser, "--privkey-path", "privkey_path",
              "Path to where the new domain private key is saved.")
    _add_path(parser, "--domain-key-path", "domain_key_path",
              "Path to privkey.pem to use for domain.")
    _add_path(parser, "--account-key-path", "account_key_path",
              "Path to privkey.pem to use for account.")
    return parser


def prepare_and_parse_args(args):
    """Parse command line arguments into a verb and a `.Configuration`.

    :param list args: command line arguments with the program name removed

    :returns: verb and configuration
    :rtype: tuple

    :raises .errors.ConfigurationError: if the options are invalid

    """
    namespace = build_parser().parse_args(args)
    namespace.domains = _flatten_domains(namespace.domains)
    logger.debug("Parsed arguments: %r", namespace)
    return namespace.verb, configuration.Configuration.from_namespace(namespace)
