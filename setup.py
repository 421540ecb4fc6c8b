import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()


install_requires = [
    "discord.py>=2.0",
    "pydantic>=2.0",
    "pydantic-settings",
    "boto3",
    "mcstatus>=11.0",
    "rich",
]

tests_require = [
    "pytest",
    "pytest-asyncio",
]

setuptools.setup(
    name="minegate",
    version="0.1.0",
    author="Leo",
    author_email="leocasti2@gmail.com",
    description="Watcher que responde a los clientes de Minecraft y arranca/apaga una instancia EC2 según la actividad.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/CalumRakk/minegate",
    packages=["minegate", "minegate.gatekeeper"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Games/Entertainment :: Real Time Strategy",
        "Framework :: AsyncIO",
    ],
    python_requires=">=3.10.0",
    install_requires=install_requires,
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": [
            "minegate=minegate.cli:run",
        ],
    },
)
