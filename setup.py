from setuptools import setup, find_packages

setup(
    name='pfa_geometry',
    version='0.1',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'numpy',
        'awkward',
        'hist',
        'matplotlib',
        'mplhep'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Detector geometry, pseudolayer and gap queries for particle flow reconstruction',
    python_requires='>=3.8',
)
