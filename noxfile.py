import os

import nox
from nox.project import load_toml

ROOT_DIR: str = os.path.dirname(os.path.abspath(__file__))
PYPROJECT = load_toml("pyproject.toml")
PACKAGE_NAME: str = PYPROJECT["project"]["name"].replace("-", "_")
SOURCE_DIR: str = os.path.join("src", PACKAGE_NAME)
TEST_DIR: str = os.path.join(ROOT_DIR, "tests")

nox.options.default_venv_backend = "uv"
nox.options.reuse_existing_virtualenvs = True


def install_dev_group(session: nox.Session) -> None:
    dependencies = nox.project.dependency_groups(PYPROJECT, "dev")
    session.install("-e", ".", *dependencies)
    session.log(f"Installed dev dependencies: {dependencies}")


# `nox -s test` runs the whole suite; `nox -s test -- tests/test_tokens.py -vv` runs one file
@nox.session
def test(session: nox.Session):
    install_dev_group(session)
    session.run("python", "-m", "pytest", *(session.posargs or [TEST_DIR, "-vv"]))


@nox.session
def check(session: nox.Session):
    session.run("uv", "tool", "run", "ruff", *(session.posargs or ["check", ".", "--fix"]), external=True)


@nox.session(name="type-check")
def type_check(session: nox.Session):
    install_dev_group(session)
    session.run("mypy", *(session.posargs or [SOURCE_DIR]))
