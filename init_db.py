#!/usr/bin/env python3
"""
Database initialization script for the Academic Progression Engine
Run this script to create the database tables
"""

from app import create_app
from database import reset_database
import sys

def main():
    """Main function to initialize database"""
    # create_app creates any missing tables
    app = create_app()

    if len(sys.argv) > 1 and sys.argv[1] == '--reset':
        print("WARNING: This will delete all existing data!")
        confirm = input("Are you sure you want to reset the database? (yes/no): ")
        if confirm.lower() == 'yes':
            reset_database(app)
        else:
            print("Database reset cancelled.")
    else:
        print("Database initialized successfully!")

if __name__ == '__main__':
    main()
