class CheckerError(Exception):
    pass


class MissingDependencyError(CheckerError):
    def __init__(self, binary):
        super().__init__(f"{binary} not found. Please install with: sudo apt update && sudo apt install ffmpeg")
        self.binary = binary


class OutputWriteError(CheckerError):
    pass
