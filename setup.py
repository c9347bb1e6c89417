import os
from setuptools import setup

here = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(here, "README.rst"), 'r', encoding="utf-8") as f:
    long_description = f.read()

setup(
    name='spectrascan',
    version='1.0.0',
    description='Overlay and average the frequency spectra of recordings',
    long_description=long_description,
    packages=['spectrascan'],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Multimedia :: Sound/Audio :: Analysis',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3 :: Only',
    ],
    keywords='frequency spectrum fft audio average wav',
    entry_points={
        'gui_scripts': ['spectrascan=spectrascan.app:main']
    },
    python_requires=">=3.9",
    install_requires=['numba', 'numpy', 'PyQt6', 'pyqtgraph'],
    extras_require={
        'test': ['pytest']
    }
)
