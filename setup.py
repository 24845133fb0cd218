from setuptools import setup, find_packages
setup(
    name="grant_directory",
    version="0.0.1",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "pydantic>=2",
        "httpx>=0.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        'console_scripts': [
            'grant_directory=grant_directory.__main__:_safe_main'
        ]
    }
)
