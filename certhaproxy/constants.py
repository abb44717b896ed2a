"""certhaproxy constants."""
import logging
import os

from acme import challenges


CHALLENGE_TYPE = "http-01"
"""The only challenge type answered by certhaproxy."""

STAGING_URI = "https://acme-staging-v02.api.letsencrypt.org/directory"
"""Let's Encrypt staging directory, selected with ``server = staging``."""

PRODUCTION_URI = "https://acme-v02.api.letsencrypt.org/directory"
"""Let's Encrypt production directory, selected with ``server = production``."""

SERVER_ALIASES = {
    "staging": STAGING_URI,
    "production": PRODUCTION_URI,
}

CONFIG_DIR_PLACEHOLDER = ":configDir"
HOSTNAME_PLACEHOLDER = ":hostname"

DEFAULT_PRIVKEY_PATH = ":configDir/live/:hostname/privkey.pem"
"""Where the domain private key is kept unless ``domain_key_path`` is set."""

CLI_DEFAULTS = dict(
    config_files=[
        os.path.join(os.environ.get("XDG_CONFIG_HOME", "~/.config"),
                     "certhaproxy", "cli.ini"),
    ],

    domains=[],
    email=None,
    agree_tos=False,
    config_dir="~/letsencrypt/etc/",
    webroot_path="/var/lib/haproxy",
    domain_key_path=None,
    privkey_path=DEFAULT_PRIVKEY_PATH,
    account_key_path=None,
    cert_path=":configDir/live/:hostname/cert.pem",
    chain_path=":configDir/live/:hostname/chain.pem",
    fullchain_path=":configDir/live/:hostname/fullchain.pem",
    key_fullchain_path=":configDir/live/:hostname/keyfullchain.pem",
    logs_dir=":configDir/logs",
    server="staging",
    rsa_key_size=2048,
    renew_within=7,
    http01_port=challenges.HTTP01Response.PORT,
    debug=False,
    duplicate=False,
)
"""Defaults for CLI flags and `.Configuration` fields."""

MIN_RSA_KEY_SIZE = 2048
"""Smallest accepted domain and account RSA key size."""

MAX_RENEW_WITHIN = 3650
"""Largest accepted renewal window, in days."""

QUIET_LOGGING_LEVEL = logging.WARNING
"""Logging level used before the command line is parsed."""

LOG_FILE = "certhaproxy.log"
"""Basename of the rotating log file in ``logs_dir``."""

MAX_LOG_BACKUPS = 100
"""Number of rotated log files kept."""

CHALLENGE_DIR = challenges.HTTP01.URI_ROOT_PATH
"""Token directory, relative to the webroot."""

LIVE_DIR = "live"
"""Live directory, relative to ``config_dir``."""

ACCOUNTS_DIR = "accounts"
"""Account keys and registrations, relative to ``config_dir``."""

RENEWAL_CONFIGS_DIR = "renewal"
"""Renewal metadata files, relative to ``config_dir``."""

ACCOUNT_KEY_FILE = "private_key.pem"
REGISTRATION_FILE = "regr.json"

BASE_PRIVKEY_MODE = 0o600
"""Mode of every file holding private key material."""

CONFIG_DIRS_MODE = 0o755
"""Directory mode for ``config_dir`` et al."""

ISSUANCE_TIMEOUT = 90
"""Seconds to poll authorizations and finalization before giving up."""
