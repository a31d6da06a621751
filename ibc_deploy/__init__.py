"""IBC Deploy - contract deployment and config fan-out.

Provisions the IBC core contracts in strict dependency order, then
publishes the resulting addresses into any number of configuration
templates named by the ``CONF_TPL`` environment variable.
"""

try:
    from importlib.metadata import version

    __version__ = version("ibc-deploy")
except Exception:
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]
