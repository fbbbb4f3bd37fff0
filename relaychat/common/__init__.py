# Common utilities
from relaychat.common.crypto import CryptoUtils as CryptoUtils
from relaychat.common.logging_utils import setup_logger as setup_logger
from relaychat.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "CryptoUtils", "setup_logger"]
