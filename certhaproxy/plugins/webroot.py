"""Webroot challenge responder."""
import errno
import logging
import os

import zope.interface

from certhaproxy import constants
from certhaproxy import errors
from certhaproxy import interfaces


logger = logging.getLogger(__name__)


@zope.interface.implementer(interfaces.IChallengeResponder)
class WebRoot(object):
    """Answers http-01 challenges by saving the validation resources
    under ``<webroot_path>/.well-known/acme-challenge/``.

    Some other HTTP server (HAProxy, nginx...) is expected to serve all
    files under the webroot. Each call only touches its own token file,
    so concurrent calls for distinct tokens don't interfere.

    :ivar dict config: Default options; at least ``webroot_path``.

    """

    def __init__(self, config):
        self.config = dict(config)

    def get_configuration(self):
        """Returns the default options."""
        return self.config

    def _challenge_dir(self, config):
        webroot_path = getattr(config, "webroot_path", None)
        if webroot_path is None and isinstance(config, dict):
            webroot_path = config.get("webroot_path")
        return os.path.join(webroot_path or self.config["webroot_path"],
                            constants.CHALLENGE_DIR)

    def _token_path(self, config, token):
        return os.path.join(self._challenge_dir(config), token)

    def store(self, config, domain, token, secret):
        """Saves ``secret`` as the content of the ``token`` file."""
        challenge_dir = self._challenge_dir(config)
        logger.debug("Creating root challenges validation dir at %s",
                     challenge_dir)
        try:
            os.makedirs(challenge_dir, 0o755)
        except OSError as exception:
            if exception.errno != errno.EEXIST:
                raise errors.FilesystemError(
                    "Couldn't create root for {0} http-01 challenge "
                    "responses: {1}".format(domain, exception),
                    challenge_dir, exception)

        validation_path = os.path.join(challenge_dir, token)
        logger.debug("Attempting to save validation to %s", validation_path)
        try:
            with open(validation_path, "wb") as validation_file:
                validation_file.write(secret.encode())
            # The web server must be able to read it. umask is process
            # wide, so chmod the file instead.
            os.chmod(validation_path, 0o644)
        except (IOError, OSError) as exception:
            raise errors.FilesystemError(
                "Couldn't save http-01 challenge response for {0}: "
                "{1}".format(domain, exception), validation_path, exception)

    def retrieve(self, config, domain, token):
        """Returns the secret saved under ``token``."""
        validation_path = self._token_path(config, token)
        try:
            with open(validation_path, "rb") as validation_file:
                return validation_file.read().decode()
        except (IOError, OSError) as exception:
            if exception.errno == errno.ENOENT:
                raise errors.NotFoundError(
                    "No http-01 challenge response for {0} at {1}".format(
                        domain, validation_path),
                    validation_path, exception)
            raise errors.FilesystemError(
                "Couldn't read http-01 challenge response for {0}: "
                "{1}".format(domain, exception), validation_path, exception)

    def remove(self, config, domain, token):
        """Deletes the ``token`` file; an absent file is not an error."""
        validation_path = self._token_path(config, token)
        logger.debug("Removing %s", validation_path)
        try:
            os.remove(validation_path)
        except OSError as exception:
            if exception.errno == errno.ENOENT:
                logger.debug("%s was already removed", validation_path)
                return
            raise errors.FilesystemError(
                "Couldn't remove http-01 challenge response for {0}: "
                "{1}".format(domain, exception), validation_path, exception)
