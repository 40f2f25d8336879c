MAJOR = 0
MINOR = 1
MICRO = 0
__version__ = f'{MAJOR:d}.{MINOR:d}.{MICRO:d}'
