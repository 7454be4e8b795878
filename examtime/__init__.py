"""examtime — extend a student's exam deadline in Redis.

Looks a student up by login, lists their exams, and pushes the end time of
one exam attempt forward by a number of minutes. The attempt record is
rewritten in full with `isFinished` reset to false.

Usage:
    python -m examtime run                                   # Interactive session
    python -m examtime extend -s a@b.edu -e 42 -m 15         # One-shot extension
    python -m examtime exams a@b.edu                         # List a student's exams
    python -m examtime show a@b.edu 42                       # Show one attempt record
    python -m examtime ping                                  # Check the store connection
"""
