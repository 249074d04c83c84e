from setuptools import find_packages, setup

with open("README.md", "r") as readme_file:
    readme = readme_file.read()

with open("HISTORY.rst") as history_file:
    history = history_file.read()

requirements = [line.strip() for line in open("requirements.txt").readlines()]
requirements_dev = [line.strip() for line in open("requirements-dev.txt").readlines()]

setup(
    name="deferred-ai",
    version="0.1.0",
    description="deferred, schema-learning model calls for asyncio",
    author="Mostafa Farrag",
    author_email="moah.farag@gmail.com",
    keywords=["llm", "generativeai", "structured output", "asyncio", "prompt pipelining"],
    long_description=readme + "\n\n" + history,
    long_description_content_type="text/markdown",
    license="GNU General Public License v3",
    zip_safe=False,
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["deferred_ai", "deferred_ai.*"]),
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "dev": requirements_dev,
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Natural Language :: English",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: AI",
        "Intended Audience :: Developers",
    ],
)
