from pathlib import Path
from setuptools import setup, find_packages


def _parse_requirements(path: str) -> list[str]:
    req_path = Path(__file__).parent / path
    if not req_path.exists():
        return []
    lines = req_path.read_text().splitlines()
    return [l.strip() for l in lines if l.strip() and not l.strip().startswith("#")]


setup(
    name="lab_explorer",
    version="0.1.0",
    description="Click-driven incremental explorer for a research lab's knowledge graph",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["lab_explorer*"]),
    include_package_data=True,
    package_data={"lab_explorer.explorer": ["templates/*.html"]},
    python_requires=">=3.9",
    install_requires=_parse_requirements("requirements-runtime.txt"),
    extras_require={"test": _parse_requirements("requirements-test.txt")},
    entry_points={"console_scripts": ["lab-explorer=lab_explorer.main:main"]},
)
