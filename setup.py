from pathlib import Path

from setuptools import find_packages, setup

NAME = "cfdimx"
ROOT = Path(__file__).resolve().parent

VERSION = "0.1.0"
for line in (ROOT / "src" / NAME / "__init__.py").read_text(encoding="utf-8").splitlines():
    if line.startswith("__version__"):
        VERSION = line.split("=", 1)[1].strip().strip('"')
        break

setup(
    name=NAME,
    version=VERSION,
    description="Motor de facturas CFDI 4.0: cálculo, validación, ciclo de vida y XML.",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={NAME: ["data/*.json"]},
    install_requires=[
        "lxml>=4.9",
        "openpyxl>=3.1",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": ["cfdimx=cfdimx.cli:main"],
    },
)
