from pathlib import Path
import setuptools

from apkrepack import __version__

info = Path(__file__).with_name("README.md").read_text(encoding = "utf8")

setuptools.setup(
    name              = "apkrepack",
    description       = "patch & re-sign android apks",
    long_description  = info,
    long_description_content_type = "text/markdown",
    version           = __version__,
    license           = "GPLv3+",
    classifiers       = [
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
        "Operating System :: MacOS :: MacOS X",
        "Operating System :: POSIX :: Linux",
        "Operating System :: POSIX",
        "Operating System :: Unix",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Software Development",
        "Topic :: Utilities",
    ],
    keywords          = "android apk zip patch signing apksigner",
    entry_points      = dict(console_scripts = ["apkrepack = apkrepack:main"]),
    packages          = ["apkrepack"],
    package_data      = dict(apkrepack = ["py.typed"]),
    python_requires   = ">=3.8",
    install_requires  = ["click>=6.0", "cryptography>=3.1"],
    extras_require    = dict(test = ["pytest"]),
)
