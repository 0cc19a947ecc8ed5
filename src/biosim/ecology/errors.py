class ConfigError(ValueError):
    """
    Raised when a simulation cannot be set up from its configuration.

    Covers missing or invalid parameters, unknown terrain letters, malformed
    map dimensions and unreadable input files. Aborts the current simulation
    only; the message names the offending file or field.
    """

    def __init__(self, message, problems=None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + "\n  " + "\n  ".join(self.problems)
        super().__init__(message)
