from steamgrid.main import main

main()
