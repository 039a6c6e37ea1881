from setuptools import setup, find_packages

setup(
    name='nodesetup',
    version='0.1.0',
    packages=find_packages(exclude=['nodesetup.tests', 'nodesetup.tests.*']),
    include_package_data=True,
    package_data={
        'nodesetup': ['templates/*.j2'],
    },
    install_requires=[
        'typer',
        'python-dotenv',
        'requests',
        'pyyaml',
        'pydantic>=2',
        'jinja2',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'nodesetup=nodesetup.cli:app'
        ]
    },
    description='Provision a Linux host with containerd and Kubernetes and join it to a cluster',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.12',
)
