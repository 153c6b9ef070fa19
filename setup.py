from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="sqlferry",
    version="0.1.0",
    author="sqlferry developers",
    description="sqlferry: dump, restore, migrate and import for MySQL, PostgreSQL and SQLite",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["sqlferry", "sqlferry.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "sqlferry=sqlferry.tools.ferry_cli:main",
        ],
    },
    include_package_data=True,
)
