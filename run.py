#!/usr/bin/env python3
"""Backup runner for cron and systemd timers"""
import sys
from ncbackup.cli import main

if __name__ == '__main__':
    sys.exit(main())
