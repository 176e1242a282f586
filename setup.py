from setuptools import find_packages, setup

setup(
    name="mock-sftp-server",
    version="0.1.0",
    description="In-memory SFTP server test double for exercising SFTP clients",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "paramiko>=3.0.0",
    ],
    entry_points={
        "console_scripts": [
            "mock-sftp=mock_sftp.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest",
        ],
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
