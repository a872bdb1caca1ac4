#!/usr/bin/env python
"""
Test runner script for the full backend suite
Usage: python run_tests.py
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'propty.config.settings')
    os.environ.setdefault('EMAIL_BACKEND', 'django.core.mail.backends.locmem.EmailBackend')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests([
        'propty.core',
        'propty.clients',
        'propty.projects',
        'propty.marketers',
        'propty.sales',
        'propty.notices',
        'propty.reports',
    ])
    sys.exit(bool(failures))
