"""Setup script for Telemetry Probe."""

from pathlib import Path

from setuptools import setup, find_packages

HERE = Path(__file__).parent

setup(
    name="telemetry_probe",
    version="1.0.0",
    description="FastAPI service that sends test logs, traces and metrics to an OTLP backend such as Grafana Cloud",
    author="Telemetry Probe Maintainers",
    python_requires=">=3.9",
    packages=find_packages(include=["telemetry_probe", "telemetry_probe.*"]),
    package_data={"telemetry_probe": ["api/templates/*.html"]},
    install_requires=[
        line.strip()
        for line in open(HERE / "requirements.txt")
        if line.strip() and not line.startswith("#") and not line.startswith("git+")
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.27.0",
        ],
        "dev": [
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "telemetry-probe=telemetry_probe.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
