#!/usr/bin/env python3

from setuptools import setup, find_packages

# Read the README file
def read_readme():
    try:
        with open('README.md', 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        return "HostBridge: log forwarding and gallery saves for a sandboxed UI layer"

# Read requirements
def read_requirements():
    try:
        with open('requirements.txt', 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    except FileNotFoundError:
        return ['PyYAML>=6.0']

setup(
    name='hostbridge',
    version='0.1.0',
    description='Native-side command bridge for log forwarding and media gallery saves',
    long_description=read_readme(),
    long_description_content_type='text/markdown',

    # Package configuration
    packages=find_packages('src'),
    package_dir={'': 'src'},
    python_requires='>=3.8',
    install_requires=read_requirements(),

    # Entry points for command-line scripts
    entry_points={
        'console_scripts': [
            'hostbridge=hostbridge.cli:main',
        ],
    },

    # Classification
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
        'Operating System :: MacOS :: MacOS X',
        'Programming Language :: Python :: 3',
        'Topic :: Multimedia :: Graphics',
        'Topic :: System :: Logging',
    ],

    # Additional metadata
    keywords='bridge method-channel logging media-gallery sqlite',

    # Testing
    extras_require={
        'dev': [
            'pytest>=6.0',
            'pytest-cov>=2.0',
            'black>=21.0',
            'flake8>=3.8',
            'mypy>=0.910',
        ],
    },

    # Zip safety
    zip_safe=False,
)
