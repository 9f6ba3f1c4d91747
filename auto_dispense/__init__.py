# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

"""Serial command controller for the gantry + syringe pump liquid handler."""

__version__ = "0.3.0"
