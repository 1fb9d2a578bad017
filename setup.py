from setuptools import setup, find_packages

def read_requirements():
    with open('requirements.txt') as req:
        lines = [line.split('#', 1)[0].strip() for line in req]
    return [line for line in lines if line]

setup(
    name='temporal_order_pipeline',
    version='0.1.0',
    packages=find_packages(exclude=["tests*"]), # Automatically find packages
    py_modules=['worker', 'run_order'],
    include_package_data=True,
    install_requires=read_requirements(),
    extras_require={
        'test': [
            'pytest>=7.4',
            'pytest-asyncio>=0.23',
            'httpx>=0.25',
        ],
    },
    description='Order pipeline (risk assessment, payment capture, confirmation) with per-step retry policies, hosted on Temporal',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Framework :: FastAPI",
    ],
    python_requires='>=3.10',
)
