from setuptools import setup, find_packages


setup(
    name="nbtbench",
    version="0.1",
    packages=find_packages(include=["nbtbench", "nbtbench.*"]),
    description="Format detection and codecs for NBT, SNBT and region files.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "lz4>=4.0.0",
        "mutf8>=1.0.6",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "nbtbench=nbtbench.cli:main",
        ]
    },
)
