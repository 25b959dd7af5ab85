from setuptools import setup


setup(
    name="csv-cleaner",
    version="0.1.0",
    description="Local CSV cleanup: trim text, handle nulls, drop duplicates and validate column formats",
    packages=["csv_cleaner"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "csv-cleaner=csv_cleaner.cli:main",
        ]
    },
)
