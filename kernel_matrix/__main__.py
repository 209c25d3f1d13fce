"""Run the kernel-matrix command line tool with `python -m kernel_matrix`."""

from kernel_matrix.tool.kernel_matrix import main

if __name__ == "__main__":
    main()
