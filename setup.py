from setuptools import find_packages, setup

package_name = "telemetry_nav"

setup(
    name=package_name,
    version="1.0.0",
    packages=find_packages(exclude=["test"]),
    package_data={package_name: ["profiles/*.yaml"]},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=["setuptools", "PyYAML"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    description="Stacked multi-tree menu navigation for robot telemetry displays",
    license="MIT",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "telemetry-nav = telemetry_nav.terminal:main",
        ],
    },
)
