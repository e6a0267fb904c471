from cliphub.cli import main

main()
