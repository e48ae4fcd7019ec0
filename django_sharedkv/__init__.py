VERSION = (1, 0, 0)
__version__ = ".".join(map(str, VERSION))


def get_connection():
    """Helper used for obtaining the shared connection.

    The caller owns one reference and must release it with ``close()``.
    """
    from django_sharedkv.connection import conn_get

    return conn_get()
