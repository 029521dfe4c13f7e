from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="slides2pdf",
    version="0.1.0",
    author="slides2pdf contributors",
    description="Download Scribd and SlideShare documents as PDF files",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Topic :: Internet :: WWW/HTTP",
    ],
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.28.0",
        "beautifulsoup4>=4.12.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "PyMuPDF>=1.24.0",
        "Pillow>=10.0.0",
        "PyYAML>=6.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "slides2pdf=slides2pdf.core.cli:main",
            "slides2pdf-server=slides2pdf.api.server:main",
        ],
    },
)
