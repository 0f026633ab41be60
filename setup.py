from setuptools import setup, find_packages


setup(
    name="envi",
    version="0.1",
    packages=find_packages(include=["envi", "envi.*"]),
    description="Capture, restore and share .env files as encrypted, chat-safe blobs.",
    author="vercingetorx",
    python_requires=">=3.11",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
        "pydantic>=2",
        "pyperclip>=1.8",
    ],
    entry_points={
        "console_scripts": [
            "envi=envi.cli:main",
        ]
    },
)
