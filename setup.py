from setuptools import setup, find_namespace_packages
import re
from pathlib import Path

_version_re = re.compile(r"^__version__\s*(?::\s*[^=]+)?\s*=\s*['\"]([^'\"]+)['\"]", re.M)


def file_getVersion(rel_path: str) -> str:
    """
    Retrieve the version string from the specified file.
    """
    version_file = Path(rel_path)
    if not version_file.exists():
        raise RuntimeError(f"Version file {rel_path} not found.")

    with open(version_file, 'r') as f:
        content = f.read()
        match = _version_re.search(content)
        if not match:
            raise RuntimeError(f"Could not find __version__ in {rel_path}")
        return match.group(1)


setup(
    name='restfile',
    version=file_getVersion('restfile/restfile.py'),
    description='Parser and variable resolver for HTTP request definition files',
    author='FNNDSC',
    author_email='rudolph.pienaar@childrens.harvard.edu',
    url='https://github.com/FNNDSC/restfile',
    packages=find_namespace_packages(include=['restfile', 'restfile.*']),
    python_requires='>=3.11',
    install_requires=[
        'pydantic>=2',
        'pydantic-settings>=2',
        'loguru',
        'rich',
        'click',
        'appdirs',
        'python-dateutil',
        'jsonpath-ng',
    ],
    license='MIT',
    entry_points={
        'console_scripts': [
            'restfile = restfile.restfile:main'
        ]
    },
    classifiers=[
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Software Development :: Testing',
    ],
    extras_require={
        'none': [],
        'dev': [
            'pytest>=7.1'
        ]
    }
)
