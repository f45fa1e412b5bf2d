import logging

from django.db import DEFAULT_DB_ALIAS, Error, connections

logger = logging.getLogger(__name__)


def connect(alias=DEFAULT_DB_ALIAS):
    """
    Open the database connection the request handlers share.

    Connections left over from an earlier call are closed first. There is no
    retry: if the database can't be reached the process exits with status 1.
    """
    connections.close_all()
    connection = connections[alias]
    try:
        connection.ensure_connection()
    except Error:
        logger.exception(
            "could not connect to %s database %s",
            connection.vendor,
            connection.settings_dict.get("NAME"),
        )
        raise SystemExit(1)

    logger.info(
        "connected to %s database %s",
        connection.vendor,
        connection.settings_dict.get("NAME"),
    )
    return connections
