from setuptools import setup


setup(
    name="fluktuasi-oi",
    version="0.1.0",
    description="Fluctuation (OI) reconciliation: MoM/YoY gaps and reasons for SIG Activa rekap workbooks",
    packages=["fluktuasi"],
    install_requires=[
        "pandas",
        "openpyxl",
        "streamlit",
        "requests",
        "pyyaml",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "test": ["pytest"],
        "all": ["xlrd"],
    },
    entry_points={
        "console_scripts": [
            "fluktuasi=fluktuasi.cli:main",
        ]
    },
)
