"""Utilities for all certhaproxy."""
import errno
import logging
import os
import re
import socket
import tempfile

from certhaproxy import errors


logger = logging.getLogger(__name__)


def make_or_verify_dir(directory, mode=0o755):
    """Make sure directory exists, creating parents as needed.

    :param str directory: Path to a directory.
    :param int mode: Directory mode.

    :raises .errors.FilesystemError: if the directory cannot be made,
        or the path exists but is not a directory

    """
    try:
        os.makedirs(directory, mode)
    except OSError as exception:
        if exception.errno != errno.EEXIST or not os.path.isdir(directory):
            raise errors.FilesystemError(
                "Unable to create directory {0}: {1}".format(
                    directory, exception), directory, exception)


def read_file(path, mode="rb"):
    """Read the whole content of a file.

    :param str path: File to read.
    :param str mode: ``rb`` for bytes, ``r`` for text.

    :raises .errors.FilesystemError: if the file cannot be read

    """
    try:
        with open(path, mode) as f:
            return f.read()
    except (IOError, OSError) as error:
        raise errors.FilesystemError(
            "Unable to read {0}: {1}".format(path, error), path, error)


def write_file_atomically(path, data, chmod=0o644):
    """Replace the content of ``path`` with ``data`` in one step.

    The data is written to a temporary file next to ``path`` which then
    replaces it, so readers see either the old or the new content, never
    a partial file. Missing parent directories are created.

    :param str path: Destination file.
    :param bytes data: New content.
    :param int chmod: Mode of the written file.

    :raises .errors.FilesystemError: if any step fails

    """
    directory = os.path.dirname(os.path.abspath(path))
    make_or_verify_dir(directory)
    try:
        fd, temp_path = tempfile.mkstemp(
            prefix="." + os.path.basename(path) + ".", dir=directory)
    except OSError as error:
        raise errors.FilesystemError(
            "Unable to write {0}: {1}".format(path, error), path, error)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(temp_path, chmod)
        os.replace(temp_path, path)
    except OSError as error:
        safely_remove(temp_path)
        raise errors.FilesystemError(
            "Unable to write {0}: {1}".format(path, error), path, error)
    logger.debug("Wrote %d bytes to %s", len(data), path)


def safely_remove(path):
    """Remove a file that may not exist."""
    try:
        os.remove(path)
    except OSError as err:
        if err.errno != errno.ENOENT:
            raise


def enforce_domain_sanity(domain):
    """Method which validates domain value and errors out if
    the requirements are not met.

    :param str domain: Domain to check

    :raises ConfigurationError: for invalid domains and cases where
        HTTP-01 validation cannot succeed

    :returns: The domain, lowercased and without a trailing dot
    :rtype: str

    """
    if not isinstance(domain, str) or not domain:
        raise errors.ConfigurationError(
            "Invalid domain name: {0!r}".format(domain))

    # HTTP-01 can't validate wildcards
    if domain.startswith("*."):
        raise errors.ConfigurationError(
            "Wildcard domains are not supported: {0}".format(domain))

    try:
        domain.encode('ascii')
    except UnicodeError:
        raise errors.ConfigurationError(
            "Non-ASCII domain names not supported. "
            "To issue for an Internationalized Domain Name, use Punycode.")

    domain = domain.lower()
    domain = domain[:-1] if domain.endswith('.') else domain

    for scheme in ("http", "https"):
        if domain.startswith("{0}://".format(scheme)):
            raise errors.ConfigurationError(
                "Requested name {0} appears to be a URL, not a FQDN. "
                "Try again without the leading \"{1}://\".".format(
                    domain, scheme))

    try:
        socket.inet_aton(domain)
    except socket.error:
        pass
    else:
        raise errors.ConfigurationError(
            "Requested name {0} is an IP address. Certificates are only "
            "issued for domain names.".format(domain))

    # FQDN checks according to RFC 2181
    if len(domain) > 255:
        raise errors.ConfigurationError(
            "Requested domain {0} is too long.".format(domain))
    for label in domain.split("."):
        if not 0 < len(label) < 64:
            raise errors.ConfigurationError(
                "Requested domain {0} has an empty or too long "
                "label.".format(domain))
        if not re.match(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$", label):
            raise errors.ConfigurationError(
                "Requested domain {0} contains invalid "
                "characters.".format(domain))

    return domain
