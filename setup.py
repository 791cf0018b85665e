from setuptools import setup

MODULES = [
    'constants',
    'calc_errors',
    'unit_registry',
    'calc_result',
    'token_parser',
    'shunting_yard',
    'matrix',
    'calcpad_engine',
    'result_formatter',
    'worksheet',
    'syntax_highlighter',
    'api_server',
]

setup(
    name='CalcPad',
    version='1.0.0',
    description='Line-oriented calculator notepad engine with units and matrices',
    py_modules=MODULES,
    python_requires='>=3.8',
    install_requires=[
        'pint>=0.24,<0.26',
        'fastapi',
        'pydantic',
        'uvicorn',
    ],
    extras_require={
        'test': ['pytest', 'httpx'],
    },
)
