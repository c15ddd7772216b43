import nox
from pathlib import Path

ROOT = Path(__file__).parent

@nox.session
def tests(session: nox.Session) -> None:
    """Run the test suite."""
    session.install("-r", "requirements.txt", "pytest")
    session.install("-e", ".")
    session.run("pytest", *session.posargs)

@nox.session
def smoke(session: nox.Session) -> None:
    """Ensure the package and its console script load in a clean environment."""
    session.install("-r", "requirements.txt")
    session.install("-e", ".")
    session.run("python", "-c", "import tankproc, tankproc.cli")
    session.run("tankproc", "--help")
