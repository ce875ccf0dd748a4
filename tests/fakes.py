from quick_settings.system import CommandResult


class FakeRunner:
    """Stands in for ``_run``; answers known commands and records every call."""

    def __init__(self, responses: dict[tuple[str, ...], CommandResult]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, command) -> CommandResult:
        key = tuple(command)
        self.calls.append(key)
        return self.responses.get(key, CommandResult(returncode=1, stdout=f"unexpected: {' '.join(key)}"))


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout)


def fail(stdout: str = "", returncode: int = 1) -> CommandResult:
    return CommandResult(returncode=returncode, stdout=stdout)
