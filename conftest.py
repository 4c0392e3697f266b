import os
import sys

# Lets pytest import dicechain from a plain checkout.
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))
