import logging


#: Package logger; by default only warnings and errors are printed.
#: Use :func:`diispy.io.log_config` to configure output.
log: logging.Logger = logging.getLogger("diispy")
