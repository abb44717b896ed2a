import codecs
import os
import re

from setuptools import find_packages, setup


def read_file(filename, encoding='utf8'):
    """Read unicode from given file."""
    with codecs.open(filename, encoding=encoding) as fd:
        return fd.read()


here = os.path.abspath(os.path.dirname(__file__))

# read version number (and other metadata) from package init
init_fn = os.path.join(here, 'certhaproxy', '__init__.py')
meta = dict(re.findall(r"""__([a-z]+)__ = '([^']+)""", read_file(init_fn)))

readme = read_file(os.path.join(here, 'README.rst'))
version = meta['version']

# PyOpenSSL comes in through acme.
install_requires = [
    'acme>=2.0.0',
    'ConfigArgParse>=0.9.3',
    'configobj',
    'cryptography>=42.0.0',  # not_valid_before_utc
    'josepy',
    'pyrfc3339',
    'pytz',
    'requests',
    'setuptools',
    'zope.interface',
]

test_extras = [
    'mock',
    'pytest',
]

dev_extras = [
    'coverage',
    'pytest-cov',
    'pylint',
    'tox',
    'wheel',
]

setup(
    name='certhaproxy',
    version=version,
    description="ACME http-01 client writing key + fullchain bundles for HAProxy",
    long_description=readme,
    license='Apache License 2.0',
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Security',
        'Topic :: System :: Networking',
        'Topic :: System :: Systems Administration',
        'Topic :: Utilities',
    ],

    packages=find_packages(include=['certhaproxy', 'certhaproxy.*']),
    include_package_data=True,

    install_requires=install_requires,
    extras_require={
        'test': test_extras,
        'dev': dev_extras + test_extras,
    },

    test_suite='certhaproxy',

    entry_points={
        'console_scripts': [
            'certhaproxy = certhaproxy.main:main',
        ],
    },
)
