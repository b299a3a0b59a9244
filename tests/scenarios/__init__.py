"""End-to-end scenarios for the concurrent checkout tester.

Each scenario drives the sandbox checkout over in-process HTTP and checks one
aspect of race detection or test order cleanup.
"""
