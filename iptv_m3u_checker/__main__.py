from iptv_m3u_checker.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
