#!/usr/bin/env python3
"""Start the background worker with suppressed security warnings for containerized environments."""

import warnings

# Suppress the superuser privilege warning
warnings.filterwarnings('ignore', category=UserWarning, message='.*superuser privileges.*')
warnings.filterwarnings('ignore', category=RuntimeWarning, message='.*superuser privileges.*')

from dealerchat.workers.runtime import main

if __name__ == '__main__':
    main()
