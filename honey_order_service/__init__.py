"""ChemaBeez honey order intake service: pricing, M-Pesa STK push and merchant email."""
