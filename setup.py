from setuptools import find_packages, setup

setup(
    name='shell-slurmx',
    version='1.0.0',
    description='Interactive X11-forwarded tmux sessions on SLURM nodes',
    packages=find_packages(exclude=[
        'slurmx.test',
        'slurmx.test.*',
    ]),
    python_requires='>=3.8',
    install_requires=[
        'chardet',
        'colorama',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        "console_scripts": [
            "slurmx = slurmx.main:main",
            "slurmx-session = slurmx.session:sessionMain",
            "slurmx-connect = slurmx.session:connectMain",
        ],
    }
)
