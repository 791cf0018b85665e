"""
CalcPad Constants Module
Contains all global constants, unit tables, and configuration data.
"""


# =============================================================================
# EVALUATION LIMITS
# =============================================================================

# Lines past this row are not evaluated (one bit per row in the result bitset)
MAX_LINE_COUNT = 64

# Characters per line handed to the tokenizer
MAX_LINE_WIDTH = 120

# Significant digits used by the decimal context during evaluation
DECIMAL_PRECISION = 50

# Decimal places shown in the result column
DEFAULT_DECIMAL_PLACES = 4


# =============================================================================
# DOCUMENT SYNTAX
# =============================================================================

SUM_VARIABLE_NAME = 'sum'
SUM_VARIABLE_INDEX = 0

# A line starting with one of these is plain text
COMMENT_PREFIXES = ("'",)

# A line starting with this is text too, and restarts the running sum
SUM_RESET_MARKER = '--'

# Keyword for explicit unit conversion: "12 km to m"
UNIT_CONVERSION_KEYWORD = 'to'

# Alternative spellings of the operator characters
OPERATOR_ALIASES = {
    '×': '*',
    '·': '*',
    '÷': '/',
}


# =============================================================================
# RESULT FORMATS
# =============================================================================

RESULT_FORMAT_DEC = 'dec'
RESULT_FORMAT_BIN = 'bin'
RESULT_FORMAT_HEX = 'hex'

RESULT_FORMATS = (RESULT_FORMAT_DEC, RESULT_FORMAT_BIN, RESULT_FORMAT_HEX)

# Prefix drawn in the result gutter by the renderer
RESULT_FORMAT_PREFIX = {
    RESULT_FORMAT_DEC: '',
    RESULT_FORMAT_BIN: '0b',
    RESULT_FORMAT_HEX: '0x',
}


# =============================================================================
# UNIT CONSTANTS
# =============================================================================

# Base dimensions of the exponent vector, in pint's dimension naming
BASE_DIMENSIONS = (
    '[length]',
    '[mass]',
    '[time]',
    '[current]',
    '[temperature]',
    '[substance]',
    '[luminosity]',
    '[information]',
)

# Spellings pint does not know, mapped to names it does
UNIT_ALIASES = {
    'lbs': 'lb',
    'hrs': 'hr',
    'mins': 'min',
    'secs': 's',
}

# Everyday words pint would read as units (annum, are, attosecond, technical atmosphere)
UNIT_STOP_WORDS = frozenset({'a', 'are', 'as', 'at'})

# Parsed unit strings kept per registry; the oldest half is dropped past the limit
UNIT_CACHE_LIMIT = 1000

# Named SI derived units, used to render compound results
# e.g. "2kg * 3m/s^2" -> "6 N"
DERIVED_UNIT_SYMBOLS = (
    'N',    # force
    'J',    # energy
    'W',    # power
    'Pa',   # pressure
    'C',    # charge
    'V',    # voltage
    'ohm',  # resistance
    'F',    # capacitance
    'Wb',   # magnetic flux
    'T',    # flux density
    'H',    # inductance
)


# =============================================================================
# UI CONSTANTS
# =============================================================================

# Theme colors
COLORS = {
    'background': '#1e1e1e',
    'comment': '#7ED321',
    'number': '#ffffff',
    'unit': '#E8A33D',
    'operator': '#4DA6FF',
    'variable': '#C792EA',
    'text': '#888888',
    'paren': '#6FCF97',
    'unmatched': '#FF5C5C',
    'matrix': '#6FCF97',
}

# Line reference colors for syntax highlighting
LN_COLORS = [
    "#FF9999", "#99FF99", "#9999FF", "#FFFF99", "#FF99FF", "#99FFFF",
    "#FFB366", "#B3FF66", "#66FFB3", "#B366FF", "#FF66B3", "#FF6666",
    "#66FF66", "#6666FF", "#FFFF66", "#FF66FF", "#66FFFF"
]


# =============================================================================
# CONFIGURATION
# =============================================================================

# API server
API_HOST = "127.0.0.1"
API_PORT = 8000

# Application metadata
APP_NAME = "CalcPad"
APP_VERSION = "1.0.0"
