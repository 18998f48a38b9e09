from setuptools import setup, find_packages

setup(
    name="mp3-trimmer",
    version="0.1.0",
    description="Extract a time range from an MP3 file with ffmpeg and play it back",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydub>=0.25.1",
        "audioop-lts; python_version>='3.13'",
        "PyYAML>=6.0",
        "python-vlc>=3.0.18122",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "mp3-trim=audio_trimmer.cli:main",
        ],
    },
)
