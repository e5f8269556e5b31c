# setup.py
from setuptools import setup, find_packages

setup(
    name="liquidity_pool",
    version="0.1.0",
    packages=find_packages(include=["liquidity_pool", "liquidity_pool.*"]),
    python_requires=">=3.9",
    install_requires=[
        "msgpack",            # pool state snapshots
        "cryptography",       # provider addresses
        "pycryptodome",       # keccak pool addresses
        "prometheus_client",  # metrics
        "psutil",             # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "pool-sim=liquidity_pool.simulate:main",
        ],
    },
)
