"""RHTSupport reporter - submit problem directories to the Red Hat support portal."""

try:
    from rhtsupport_reporter._version import version as __version__
except ImportError:
    __version__ = "0.0.0.dev0"
