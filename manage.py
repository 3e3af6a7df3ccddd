#!/usr/bin/env python
import os
import sys

# config.settings picks local/test/prod from DJANGO_ENV.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

from django.core.management import execute_from_command_line

if __name__ == "__main__":
    execute_from_command_line(sys.argv)
