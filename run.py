#!/usr/bin/env python3
"""
Development server launcher for the field project management backend
"""
import os
from backend.app import create_app

if __name__ == '__main__':
    app = create_app()
    app.run(
        debug=True,
        host=os.getenv('FIELDPM_HOST', '127.0.0.1'),
        port=int(os.getenv('FIELDPM_PORT', '5000'))
    )
