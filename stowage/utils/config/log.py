import logging

#-----------------------------------------------------------------------------

class LogConfig:
    def __init__(
        self,
        name    : str = "",
        dir     : str = "",
        level   : int = logging.INFO
    ):
        self.name   = name
        self.dir    = dir or "."
        self.level  = level


    def print(self):
        target = f"{self.dir}/{self.name}" if self.name else "console"
        print(f"log             : {target}:{logging.getLevelName(self.level)}")

#-----------------------------------------------------------------------------
