from setuptools import setup, find_packages

setup(
    name="candles_feeder",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "colorama",
        "numpy",
        "pandas",
        "requests",
        "tzdata",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'candles-feeder=candles_feeder.cli:main',
        ],
    },
    # Metadata
    description="Backfill and realtime ingestion of exchange OHLCV candles into a time-series store",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    keywords="trading,candles,ohlcv,backfill,crypto",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)
