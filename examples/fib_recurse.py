"""Naive recursive Fibonacci, a small trace for exploring with semzoom.

    semzoom record -o fib.json examples/fib_recurse.py
    semzoom serve fib.json examples/fib_recurse.py
"""


def fib(n):
    if n < 2:
        return n
    a = fib(n - 1)
    b = fib(n - 2)
    return a + b


def main():
    values = [fib(i) for i in range(3)]
    total = fib(5)
    print(values, total)


main()
