#!/usr/bin/env python
# -*- coding: utf-8 -*-

import os
from setuptools import setup, find_packages

# Get the long description from the README file
with open(os.path.join(os.path.dirname(__file__), "README.md"), encoding="utf-8") as f:
    long_description = f.read()

# Get package requirements
with open(os.path.join(os.path.dirname(__file__),
                      "reactor_agent/requirements.txt"), encoding="utf-8") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="reactor-agent",
    version="0.1.0",
    description="Reactor Agent - an interruptible ReAct agent core with tools, memory and hooks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Reactor Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"reactor_agent": ["requirements.txt"]},
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "reactor-agent=reactor_agent.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    keywords="ai, agent, llm, react, tools",
)
