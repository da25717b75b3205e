# CounterPOS load tests
#
# Unit and API tests live in backend/tests (pytest).
# This package holds the Locust stress scenario:
#   locust -f tests/stress/locustfile.py --host http://127.0.0.1:5000
