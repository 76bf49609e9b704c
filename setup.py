"""Setup configuration for the relaychat chat service."""

from setuptools import setup, find_packages

setup(
    name="relaychat",
    version="0.1.0",
    description="A moderated TCP chat relay with multicast fan-out",
    author="relaychat Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "textual>=0.47.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "relaychat-server=relaychat.server.main:main",
            "relaychat-client=relaychat.client.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
