from setuptools import setup, find_packages

setup(name='asyncflow',
      version='0.1.0',
      description='Cancellable loops, offloaded execution, and asynchronous iteration and branching, built from Futures on top of trio',
      classifiers=[
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: MIT License",
          "Operating System :: POSIX",
          "Framework :: Trio",
      ],
      keywords='trio async future loop worker',
      license='MIT',
      packages=find_packages(include=['asyncflow', 'asyncflow.*']),
      python_requires='>=3.11',
      install_requires=[
          'trio>=0.23',
          'outcome',
      ],
)
