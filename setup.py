"""
Setup configuration for Mission Planner package
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="mission-planner-agent",
    version="1.0.0",
    description="Dependency-aware mission planning and execution engine with a LangGraph review loop",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["start_mission"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "langgraph>=0.2.0",
        "langchain-anthropic>=0.1.0",
        "langchain-core>=0.2.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "openai": [
            "langchain-openai>=0.1.0",
        ],
        "google": [
            "langchain-google-genai>=1.0.0",
        ],
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mission-planner=start_mission:main",
        ],
    },
)
