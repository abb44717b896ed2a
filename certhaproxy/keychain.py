"""Combined private key + fullchain file.

Some TLS terminators (HAProxy among them) want the private key and the
whole certificate chain in a single PEM file.

"""
import logging

from certhaproxy import constants
from certhaproxy import paths
from certhaproxy import util

logger = logging.getLogger(__name__)


def concatenate_key_and_fullchain(config):
    """Concatenates the private key and fullchain in one file.

    The key is ``domain_key_path`` if set, ``privkey_path`` otherwise.
    Both sources are read before anything is written: if either one is
    missing, the destination is left untouched.

    :param .Configuration config: Configuration

    :returns: the concatenated private key and full certificate chain
    :rtype: bytes

    :raises .errors.FilesystemError: if a source can't be read or the
        destination can't be written

    """
    context = paths.PathContext.from_config(config)
    privkey_path = paths.resolve(config.effective_privkey_path, context)
    fullchain_path = paths.resolve(config.fullchain_path, context)
    key_fullchain_path = paths.resolve(config.key_fullchain_path, context)

    key_fullchain = (util.read_file(privkey_path) +
                     util.read_file(fullchain_path))

    util.write_file_atomically(key_fullchain_path, key_fullchain,
                               chmod=constants.BASE_PRIVKEY_MODE)
    logger.info("Saved private key and fullchain to %s", key_fullchain_path)
    return key_fullchain
