"""python -m spm_swap"""

from .main import main

main()
