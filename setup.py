"""Setup configuration for ado_pr_report"""

from setuptools import setup, find_namespace_packages

setup(
    name="ado-pr-report",
    version="0.1.0",
    description=(
        "CLI tool listing Azure DevOps pull requests completed within an "
        "inclusive date window."
    ),
    author="ADO PR Report Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "ado-pr-report=ado_pr_report.main:main",
        ],
    },
)
