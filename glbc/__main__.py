"""glbc is a command line program running the global load balancer controllers.

Example usage:
  python -m glbc run ./manifests --domain example.com --resolve lb.example.com=10.0.0.1
"""

from glbc.tool.glbc import main

if __name__ == "__main__":
    main()
