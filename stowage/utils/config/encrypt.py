import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

#-----------------------------------------------------------------------------

FERNET_PREFIX = "gAAAA"

#-----------------------------------------------------------------------------

class AbstractEncrypter:
    def decrypt(self, s: str) -> str: ...
    def encrypt(self, s: str) -> str: ...
    def is_encrypted(self, s: str) -> bool: ...

#-----------------------------------------------------------------------------

class FernetEncrypter(AbstractEncrypter):
    """
    Encrypts secrets stored in YAML configuration files

    An unusable key disables the encrypter: encrypt() then returns "" and
    decrypt() returns its input unchanged.
    """

    def __init__(self, key: str):
        self._key = key.strip()

        try:
            self._fernet = Fernet(self._key)
        except ValueError as e:
            logger.error(f"Invalid configuration encryption key: {str(e)}")
            self._fernet = None

    #-----------------------------------------------------

    def decrypt(self, s: str) -> str:
        if not s or not self._fernet or not self.is_encrypted(s):
            return s

        try:
            return self._fernet.decrypt(s.encode()).decode()

        except InvalidToken:
            logger.error("Failed to decrypt configuration value, wrong CONFIG_ENCRYPTION_KEY?")
            return s

    #-----------------------------------------------------

    def encrypt(self, s: str) -> str:
        if not s or not self._fernet:
            return ""

        return self._fernet.encrypt(s.encode()).decode()

    #-----------------------------------------------------

    def is_encrypted(self, s: str) -> bool:
        return s.startswith(FERNET_PREFIX)

#-----------------------------------------------------------------------------
