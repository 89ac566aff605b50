#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name='amg-metadata',
    version='0.2.0',
    description='All Music Guide browsing engine and artist/album metadata lookup',
    author='AMG Metadata',
    packages=find_packages(exclude=['tests', 'tests.*']),
    entry_points={
        'console_scripts': [
            'amg-tag=amg.cli:main',
        ],
    },
    install_requires=[
        # Core dependencies
        'beautifulsoup4>=4.11.0',
        'requests>=2.28.0',

        # Retry and resilience
        'tenacity>=8.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: End Users/Desktop',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Multimedia :: Sound/Audio',
        'Topic :: Internet :: WWW/HTTP :: Browsers',
    ],
    python_requires='>=3.8',
)
