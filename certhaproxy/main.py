"""certhaproxy main entry point."""
import logging
import sys

import certhaproxy
from certhaproxy import cli
from certhaproxy import constants
from certhaproxy import errors
from certhaproxy import log
from certhaproxy import orchestrator
from certhaproxy import paths
from certhaproxy import util

logger = logging.getLogger(__name__)


def report_certificate(certs, config):
    """Print where the certificate is and how long it is valid.

    :param .CertificateBundle certs: Obtained certificate
    :param .Configuration config: Configuration

    """
    key_fullchain_path = paths.resolve_for(config, config.key_fullchain_path)
    print("Certificate for {0}".format(", ".join(certs.altnames)))
    print("  issued:         {0}".format(certs.issued_at))
    print("  valid until:    {0}".format(certs.expires_at))
    print("  private key:    {0}".format(certs.privkey))
    print("  certificate:    {0}".format(certs.cert))
    print("  fullchain:      {0}".format(certs.fullchain))
    print("  key+fullchain:  {0}".format(key_fullchain_path))


def run(verb, config, workflow=None):
    """Obtain or renew the certificate for ``config``.

    :param str verb: ``certonly`` or ``renew``
    :param .Configuration config: Configuration
    :param workflow: `.CertificateOrchestrator` to use

    :returns: the certificate
    :rtype: .CertificateBundle

    """
    workflow = workflow or orchestrator.CertificateOrchestrator()
    if verb == "renew":
        return workflow.renew_certificate(config)
    return workflow.generate_certificate(config)


def main(cli_args=None):
    """Run certhaproxy.

    :param cli_args: command line, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status
    :rtype: `str` or `int` or `None`

    """
    if cli_args is None:
        cli_args = sys.argv[1:]

    log.pre_arg_parse_setup()
    logger.debug("certhaproxy version: %s", certhaproxy.__version__)
    logger.debug("Arguments: %r", cli_args)

    verb, config = cli.prepare_and_parse_args(cli_args)
    util.make_or_verify_dir(config.config_dir, constants.CONFIG_DIRS_MODE)
    log.post_arg_parse_setup(config)

    try:
        certs = run(verb, config)
    except errors.ConcatenationError as error:
        report_certificate(error.bundle, config)
        logger.error("Unable to write the key + fullchain file: %s",
                     error.error)
        return 1
    report_certificate(certs, config)
    return None


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
