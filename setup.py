"""
Setup configuration for the node mount agent
"""

from setuptools import setup, find_packages
import os

# Read README
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='nodemount',
    version='1.0.0',
    description='Node-local agent reconciling Lustre and LVM mounts against client mount resources',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    license='Apache License 2.0',

    packages=find_packages(exclude=['tests', 'tests.*']),

    install_requires=[
        'pika>=1.3.2',
        'sqlalchemy>=1.4.48',
        'pymysql>=1.0.3',
        'click>=8.1.3',
        'tabulate>=0.9.0',
        'pyyaml>=6.0',
        'python-json-logger>=2.0.7',
    ],

    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'pytest-mock>=3.11.1',
        ],
    },

    entry_points={
        'console_scripts': [
            'nodemount-server=nodemount.server.mount_server:main',
            'nodemount-cli=nodemount.cli.main:main',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: System :: Filesystems',
        'Topic :: System :: Systems Administration',
    ],

    python_requires='>=3.8',

    include_package_data=True,
    zip_safe=False,

    keywords='mount lustre lvm gfs2 reconcile agent',
)
