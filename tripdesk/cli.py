#!/usr/bin/env python3
"""
TripDesk - Command Line Interface

Usage:
    tripdesk init-db
    tripdesk capacity set 2025-12-20 --capacity 10
    tripdesk capacity show 2025-12-20
    tripdesk leads list --status Hot
    tripdesk leads add --name "Sara" --email sara@example.com --destination Baku --start-date 2025-12-20 --pax 2 --value 1800
    tripdesk convert <lead_id> [--proposal <id> --option Luxury] [--pax 2]
    tripdesk cancel <booking_id> --reason "client request"
    tripdesk agenda
"""
import argparse
import asyncio
import json
import logging
import sys

from tripdesk.core.config import settings
from tripdesk.core.database import create_db_engine, init_db
from tripdesk.core.errors import DuplicateLeadSuspected, TripDeskError
from tripdesk.core.logging import configure_logging
from tripdesk.desk import TripDesk
from tripdesk.services.messages import error_payload
from tripdesk.store import build_store

LOGGER = logging.getLogger(__name__)


def print_json(data, indent=2):
    """Pretty print JSON data"""
    print(json.dumps(data, indent=indent, ensure_ascii=False, default=str))


def cmd_init_db(args):
    """Create the store tables in DATABASE_URL"""
    engine = create_db_engine()
    init_db(engine)
    print(f"✓ Tables created in {engine.url.render_as_string(hide_password=True)}")


async def cmd_capacity(args, desk: TripDesk):
    """Open, block or inspect seats for a date"""
    if args.action == 'set':
        slot = await desk.inventory.open_date(args.date, args.capacity, is_blocked=args.blocked)
        print("✓ Capacity saved")
        print_json(slot)
        return
    slot = await desk.inventory.availability(args.date)
    if slot is None:
        print(f"No capacity configured for {args.date}")
        return
    print_json(slot)


async def cmd_leads(args, desk: TripDesk):
    """List or add leads"""
    if args.action == 'list':
        leads = await desk.leads.load()
        if args.status:
            leads = [lead for lead in leads if lead.get('status') == args.status]
        print(f"Found {len(leads)} lead(s)")
        print("-" * 40)
        for lead in leads:
            print(f"  {lead['id']}  [{lead.get('status')}] {lead.get('name')} -> {lead.get('destination') or '-'}")
        return

    data = {
        'name': args.name,
        'email': args.email,
        'phone': args.phone,
        'destination': args.destination,
        'start_date': args.start_date,
        'pax_adult': args.pax,
        'potential_value': args.value,
        'source': args.source,
    }
    data = {k: v for k, v in data.items() if v is not None}
    try:
        lead = await desk.pipeline.create_lead(data, confirm_duplicate=args.force)
    except DuplicateLeadSuspected as e:
        print(f"✗ {e.message}")
        print("Re-run with --force to save it anyway")
        sys.exit(2)
    print("✓ Lead created")
    print_json(lead)


async def cmd_convert(args, desk: TripDesk):
    """Convert a lead (optionally via a proposal option) into a booking"""
    result = await desk.conversion.convert(
        args.lead_id,
        proposal_id=args.proposal,
        option_id=args.option,
        pax_count=args.pax,
        travel_date=args.date,
        amount=args.amount,
        performed_by=args.user,
    )
    print(f"✓ Booking {result.booking_id} created")
    for warning in result.warnings:
        print(f"⚠ {warning.message}")
    print_json(result.to_dict())


async def cmd_cancel(args, desk: TripDesk):
    """Cancel a booking and release its seats"""
    booking = await desk.booking_desk.cancel(args.booking_id, reason=args.reason, performed_by=args.user)
    print(f"✓ Booking {args.booking_id} is {booking.get('status')}")


async def cmd_agenda(args, desk: TripDesk):
    """Pending follow-ups: overdue, due today, upcoming"""
    await desk.follow_ups.load()
    agenda = desk.scheduler.agenda()
    for section in ('overdue', 'due_today', 'upcoming'):
        tasks = agenda[section]
        print(f"{section.replace('_', ' ').title()} ({len(tasks)})")
        for task in tasks:
            print(f"  [{task.get('priority')}] {task.get('scheduled_at')} {task.get('type')} "
                  f"{task.get('lead_name') or task.get('lead_id')}: {task.get('description') or ''}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tripdesk',
        description='TripDesk lead pipeline and booking desk',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Open 10 seats on a date
  tripdesk capacity set 2025-12-20 --capacity 10

  # Convert a lead into a booking using the proposal's "Luxury" option
  tripdesk convert LEAD_ID --proposal PROPOSAL_ID --option Luxury
        """
    )

    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--backend', choices=['sql', 'rest', 'memory'], help='Store backend (overrides .env)')
    parser.add_argument('--user', help='Name recorded in audit entries')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    subparsers.add_parser('init-db', help='Create database tables')

    # Capacity
    capacity_parser = subparsers.add_parser('capacity', help='Manage seats per date')
    capacity_parser.add_argument('action', choices=['set', 'show'])
    capacity_parser.add_argument('date', help='Travel date (YYYY-MM-DD)')
    capacity_parser.add_argument('--capacity', '-c', type=int, default=settings.DEFAULT_DAILY_CAPACITY,
                                 help='Seats available on the date')
    capacity_parser.add_argument('--blocked', action='store_true', help='Close the date for bookings')

    # Leads
    leads_parser = subparsers.add_parser('leads', help='List or add leads')
    leads_parser.add_argument('action', choices=['list', 'add'])
    leads_parser.add_argument('--status', help='Filter by status (list)')
    leads_parser.add_argument('--name', help='Lead name')
    leads_parser.add_argument('--email', help='Email address')
    leads_parser.add_argument('--phone', help='Phone number')
    leads_parser.add_argument('--destination', help='Destination')
    leads_parser.add_argument('--start-date', help='Travel date (YYYY-MM-DD)')
    leads_parser.add_argument('--pax', type=int, help='Adults travelling')
    leads_parser.add_argument('--value', type=float, help='Potential value')
    leads_parser.add_argument('--source', help='Lead source')
    leads_parser.add_argument('--force', action='store_true', help='Save even if it looks like a duplicate')

    # Convert
    convert_parser = subparsers.add_parser('convert', help='Convert a lead into a booking')
    convert_parser.add_argument('lead_id', help='Lead ID')
    convert_parser.add_argument('--proposal', help='Proposal ID')
    convert_parser.add_argument('--option', help='Proposal option ID or name')
    convert_parser.add_argument('--pax', type=int, help='Seats to reserve (defaults to the lead)')
    convert_parser.add_argument('--date', help='Travel date (defaults to the lead start date)')
    convert_parser.add_argument('--amount', type=float, help='Booking amount')

    # Cancel
    cancel_parser = subparsers.add_parser('cancel', help='Cancel a booking')
    cancel_parser.add_argument('booking_id', help='Booking ID')
    cancel_parser.add_argument('--reason', help='Reason recorded in the audit trail')

    subparsers.add_parser('agenda', help='Show pending follow-ups')

    return parser


def main(argv=None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging('DEBUG' if args.debug else None)

    if args.command == 'init-db':
        cmd_init_db(args)
        return

    if args.command == 'leads' and args.action == 'add' and not args.name:
        parser.error('leads add requires --name')

    commands = {
        'capacity': cmd_capacity,
        'leads': cmd_leads,
        'convert': cmd_convert,
        'cancel': cmd_cancel,
        'agenda': cmd_agenda,
    }

    async def run():
        desk = TripDesk(build_store(args.backend), performed_by=args.user)
        await commands[args.command](args, desk)

    try:
        asyncio.run(run())
    except TripDeskError as e:
        print(f"✗ Error: {e.message}")
        print_json(error_payload(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
