from setuptools import setup, find_namespace_packages

setup(
    name="image_proxy",
    version="0.1.0",
    author="Your Name",
    description="An on-the-fly image transformation proxy: crop, scale, blur and grayscale over HTTP.",
    packages=find_namespace_packages(include=["image_proxy", "image_proxy.*"]),
    py_modules=["run_server"],
    install_requires=[
        "numpy",
        "pyyaml",
        "opencv-python-headless",
        "imageio",
        "pillow",
        "tifffile",
        "pydantic>=2",
        "requests",
        "fastapi",
        "anyio",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        'console_scripts': [
            'image-proxy=run_server:main',
        ],
    },
    python_requires='>=3.10',
)
