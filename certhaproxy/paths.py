"""Resolution of templated, per-hostname file locations.

Every ``*_path`` option may contain the placeholders ``:configDir`` and
``:hostname``, and may start with ``~``. They are expanded here, and only
here, right before a path is used for I/O.

"""
import collections
import os

from certhaproxy import constants


class PathContext(collections.namedtuple(
        "PathContext", "config_dir hostname home")):
    """Values substituted into path templates.

    :ivar str config_dir: Replaces ``:configDir``.
    :ivar str hostname: Replaces ``:hostname``.
    :ivar str home: Replaces a leading ``~``.

    """
    __slots__ = ()

    @classmethod
    def from_config(cls, config):
        """Context for the first domain of ``config``.

        :param .Configuration config: Configuration

        :rtype: PathContext

        """
        return cls(config_dir=config.config_dir, hostname=config.hostname,
                   home=os.path.expanduser("~"))


def resolve(template, context):
    """Expand a path template.

    A leading ``~`` is replaced once with the home directory, then every
    occurrence of ``:configDir`` and ``:hostname`` is substituted. Anything
    else is left alone, so a template without placeholders comes back
    unchanged.

    :param str template: Path template
    :param PathContext context: Substituted values

    :returns: Expanded path
    :rtype: str

    """
    if template.startswith("~"):
        template = context.home + template[1:]
    return (template
            .replace(constants.CONFIG_DIR_PLACEHOLDER, context.config_dir)
            .replace(constants.HOSTNAME_PLACEHOLDER, context.hostname))


def resolve_for(config, template):
    """Expand ``template`` for the first domain of ``config``."""
    return resolve(template, PathContext.from_config(config))
