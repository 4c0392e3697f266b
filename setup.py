import setuptools

setuptools.setup(
    name="dicechain",
    version="0.0.0",
    classifiers=["Programming Language :: Python :: 3"],
    packages=setuptools.find_namespace_packages(include=["dicechain", "dicechain.*"]),
    package_data={"dicechain": ["node.lark", "settings.default.yaml"]},
    python_requires=">=3.8",
    install_requires=["lark", "pyyaml", "plotly", "pandas"],
    extras_require={"test": ["pytest"]},
)
